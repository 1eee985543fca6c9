"""Outcome categories for internal API calls and delivery dispatches."""

from enum import Enum


class OperationStatus(Enum):
    """How an operation ended, as far as a caller deciding what to do next cares.

    ``TRANSIENT_ERROR`` is the only failure worth attempting again: a dropped
    connection, a 5xx or a rate limit from the internal API, or a delivery
    attempt the dispatcher will re-queue. ``UNAUTHORIZED`` means the
    internal client key was rejected and ``NOT_FOUND`` that the generation or
    cast does not exist; neither improves on retry.
    """

    SUCCESS = "success"
    TRANSIENT_ERROR = "transient_error"
    PERMANENT_ERROR = "permanent_error"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
