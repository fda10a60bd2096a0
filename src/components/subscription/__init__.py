"""
Subscription component - double opt-in confirmation pipeline.
"""

from .component import (
    SubscriptionPipeline,
    is_valid_email,
    normalize_email,
    run,
    run_submit,
    validate_email,
)
from .models import (
    AbuseRejectedError,
    BackendError,
    ConfirmInput,
    FormValidationError,
    NotificationError,
    PendingRequest,
    PipelineResult,
    PipelineState,
    QueueFullError,
    ResultCode,
    SubscriptionError,
    SubscriptionForm,
    TokenInvalidError,
    WorkKind,
)
from .ports import (
    CsrfPort,
    ListRegistryPort,
    NotifierPort,
    RateLimiterPort,
)

__all__ = [
    # Entry point
    "run",
    "run_submit",
    "SubscriptionPipeline",
    # Functions
    "is_valid_email",
    "normalize_email",
    "validate_email",
    # Input models
    "ConfirmInput",
    "PendingRequest",
    "SubscriptionForm",
    # Output models
    "PipelineResult",
    "PipelineState",
    "ResultCode",
    "WorkKind",
    # Errors
    "SubscriptionError",
    "AbuseRejectedError",
    "BackendError",
    "FormValidationError",
    "NotificationError",
    "QueueFullError",
    "TokenInvalidError",
    # Ports
    "CsrfPort",
    "ListRegistryPort",
    "NotifierPort",
    "RateLimiterPort",
]
