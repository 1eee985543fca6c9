"""Infrastructure modules for the generation delivery service.

Centralized infrastructure components:
- configuration: Settings management (Settings and per-concern settings)
- logging: Structured logging (configure_logging, get_module_logger)
- operations: Operation results and status codes
- clients: Internal API client
- notifications: Payload normalization, channel notifiers and dispatcher
- services: Settings provider (get_settings)
"""

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "OperationResult",
    "OperationStatus",
]
