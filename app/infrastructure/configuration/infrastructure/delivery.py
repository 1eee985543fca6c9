"""Chat delivery infrastructure settings."""

from pydantic import Field, model_validator

from infrastructure.configuration.base import InfrastructureSettings


class DeliverySettings(InfrastructureSettings):
    """Job-level delivery configuration shared by all channels.

    Environment Variables:
        DELIVERY_MAX_ATTEMPTS: Dispatch attempts before a record is dropped (default: 3)
        DELIVERY_MEDIA_GROUP_LIMIT: Photos per grouped message (default: 10)
        DELIVERY_PRIVATE_NOTICE: Text posted in a group when a file was sent privately
    """

    DELIVERY_MAX_ATTEMPTS: int = Field(default=3, alias="DELIVERY_MAX_ATTEMPTS")
    DELIVERY_MEDIA_GROUP_LIMIT: int = Field(
        default=10, alias="DELIVERY_MEDIA_GROUP_LIMIT"
    )
    DELIVERY_PRIVATE_NOTICE: str = Field(
        default="📄 Your file has been sent to you in a private message.",
        alias="DELIVERY_PRIVATE_NOTICE",
    )

    @model_validator(mode="after")
    def validate_limits(self) -> "DeliverySettings":
        if self.DELIVERY_MAX_ATTEMPTS < 1:
            raise ValueError("DELIVERY_MAX_ATTEMPTS must be at least 1")
        if self.DELIVERY_MEDIA_GROUP_LIMIT < 2:
            raise ValueError("DELIVERY_MEDIA_GROUP_LIMIT must be at least 2")
        return self
