"""
Subscription pipeline models.

Inputs, results, the state machine and the error taxonomy of the double
opt-in flow.

Flow per request:
Submitted → RateChecked → CsrfChecked → DuplicateChecked → TokenIssued →
EmailSent → LinkVisited → TokenConsumed → BackendCalled → Completed | Failed
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from src.components.backends.models import Action

# --- Email validation ---

EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
MAX_EMAIL_LENGTH = 254
# Cheap heuristic against generated addresses
REPEATED_SEPARATORS = re.compile(r"\.{2,}|@{2,}|_{2,}|-{2,}")


# --- State machine ---


class PipelineState(Enum):
    SUBMITTED = "submitted"
    RATE_CHECKED = "rate_checked"
    CSRF_CHECKED = "csrf_checked"
    DUPLICATE_CHECKED = "duplicate_checked"
    TOKEN_ISSUED = "token_issued"
    EMAIL_SENT = "email_sent"
    LINK_VISITED = "link_visited"
    TOKEN_CONSUMED = "token_consumed"
    BACKEND_CALLED = "backend_called"
    COMPLETED = "completed"
    FAILED = "failed"


class WorkKind(Enum):
    """Queue (and worker) a unit of work belongs to."""

    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"
    SUBSCRIBE_CONFIRM = "subscribe-confirm"
    UNSUBSCRIBE_CONFIRM = "unsubscribe-confirm"

    @classmethod
    def request_for(cls, action: Action) -> WorkKind:
        return cls.SUBSCRIBE if action is Action.SUBSCRIBE else cls.UNSUBSCRIBE

    @classmethod
    def confirm_for(cls, action: Action) -> WorkKind:
        return cls.SUBSCRIBE_CONFIRM if action is Action.SUBSCRIBE else cls.UNSUBSCRIBE_CONFIRM


# --- Results ---


class ResultCode(Enum):
    CONFIRMATION_SENT = "confirmation_sent"
    CONFIRMATION_PENDING = "confirmation_pending"
    ALREADY_SUBSCRIBED = "already_subscribed"
    NOT_SUBSCRIBED = "not_subscribed"
    SUBSCRIBED = "subscribed"
    UNSUBSCRIBED = "unsubscribed"
    NOT_FOUND = "not_found"
    CONFIRMATION_ERROR = "confirmation_error"
    CONFIRMATION_EMAIL_FAILED = "confirmation_email_failed"
    BACKEND_ERROR = "backend_error"
    INVALID_EMAIL = "invalid_email"
    SPAM_DETECTED = "spam_detected"
    CSRF_INVALID = "csrf_invalid"
    RATE_LIMITED = "rate_limited"
    UNKNOWN_LIST = "unknown_list"
    QUEUE_FULL = "queue_full"
    OPERATION_FAILED = "operation_failed"

    @property
    def http_status(self) -> int:
        return HTTP_STATUS[self]

    @property
    def message_key(self) -> str:
        return MESSAGE_KEYS.get(self, self.value)

    @property
    def retryable(self) -> bool:
        return self in (ResultCode.QUEUE_FULL, ResultCode.RATE_LIMITED)


HTTP_STATUS: dict[ResultCode, int] = {
    ResultCode.CONFIRMATION_SENT: 200,
    ResultCode.CONFIRMATION_PENDING: 200,
    ResultCode.ALREADY_SUBSCRIBED: 200,
    ResultCode.NOT_SUBSCRIBED: 200,
    ResultCode.SUBSCRIBED: 200,
    ResultCode.UNSUBSCRIBED: 200,
    ResultCode.NOT_FOUND: 200,
    ResultCode.CONFIRMATION_ERROR: 400,
    ResultCode.CONFIRMATION_EMAIL_FAILED: 500,
    ResultCode.BACKEND_ERROR: 502,
    ResultCode.INVALID_EMAIL: 400,
    ResultCode.SPAM_DETECTED: 400,
    ResultCode.CSRF_INVALID: 403,
    ResultCode.RATE_LIMITED: 429,
    ResultCode.UNKNOWN_LIST: 400,
    ResultCode.QUEUE_FULL: 503,
    ResultCode.OPERATION_FAILED: 500,
}

# Result codes whose UI string key differs from the code value
MESSAGE_KEYS: dict[ResultCode, str] = {
    ResultCode.SUBSCRIBED: "subscribe_confirmation_success",
    ResultCode.UNSUBSCRIBED: "unsubscribe_confirmation_success",
    ResultCode.RATE_LIMITED: "rate_limit",
}


@dataclass(frozen=True)
class PipelineResult:
    """Terminal outcome of one pipeline step, ready for rendering."""

    code: ResultCode
    email: str = ""
    mailing_list: str = ""
    message: str = ""
    state: PipelineState = PipelineState.COMPLETED

    @property
    def http_status(self) -> int:
        return self.code.http_status

    @property
    def failed(self) -> bool:
        return self.state is PipelineState.FAILED


# --- Inputs ---


@dataclass(frozen=True)
class SubscriptionForm:
    """Parsed form fields plus client identity."""

    email: str
    action: Action = Action.SUBSCRIBE
    csrf_token: str = ""
    website: str = ""  # Honeypot, must be empty
    mailing_list: str = ""
    name: str = ""
    ip: str = "unknown-ip"
    lang: str | None = None


@dataclass(frozen=True)
class ConfirmInput:
    """A visited confirmation link."""

    token: str
    expected_action: Action | None = None
    lang: str | None = None


@dataclass(frozen=True)
class PendingRequest:
    """A screened request waiting for its confirmation email."""

    email: str
    mailing_list: str
    action: Action
    name: str | None = None
    lang: str | None = None
    ip: str = ""


# --- Errors ---


class SubscriptionError(Exception):
    """Base exception for pipeline failures. Carries the result code to report."""

    code: ResultCode = ResultCode.OPERATION_FAILED

    def __init__(self, message: str, *, email: str = "", mailing_list: str = "") -> None:
        self.message = message
        self.email = email
        self.mailing_list = mailing_list
        super().__init__(message)

    def to_result(self) -> PipelineResult:
        return PipelineResult(
            code=self.code,
            email=self.email,
            mailing_list=self.mailing_list,
            message=self.message,
            state=PipelineState.FAILED,
        )


class FormValidationError(SubscriptionError):
    """Malformed input: bad email or unknown list."""

    def __init__(self, code: ResultCode, message: str, **kwargs: str) -> None:
        self.code = code
        super().__init__(message, **kwargs)


class AbuseRejectedError(SubscriptionError):
    """Rate limit, CSRF or honeypot rejection."""

    def __init__(self, code: ResultCode, message: str, **kwargs: str) -> None:
        self.code = code
        super().__init__(message, **kwargs)


class TokenInvalidError(SubscriptionError):
    """Missing, expired, already used or wrong-type confirmation token."""

    code = ResultCode.CONFIRMATION_ERROR


class BackendError(SubscriptionError):
    """The mailing-list provider refused or could not be reached."""

    code = ResultCode.BACKEND_ERROR


class NotificationError(SubscriptionError):
    """The confirmation email could not be sent."""

    code = ResultCode.CONFIRMATION_EMAIL_FAILED


class QueueFullError(SubscriptionError):
    """A work queue stayed full past the enqueue timeout. Retryable."""

    code = ResultCode.QUEUE_FULL

    def __init__(self, kind: WorkKind, **kwargs: str) -> None:
        self.kind = kind
        super().__init__(f"The {kind.value} queue is full", **kwargs)
