"""
Subscription pipeline component.

Double opt-in flow: screen a submitted form, issue a confirmation token
and email it, then apply the membership change at the backend once the
link is visited.

Policy:
- Screening rejects (terminal) on missing email, bad CSRF token, rate
  limit, filled honeypot or malformed email, in that order.
- A pending confirmation of the same type, an already subscribed address
  (subscribe) or an absent address (unsubscribe) short-circuits without
  issuing a token.
- If the confirmation email cannot be sent the failure is reported and
  the token stays live until it expires; resubmitting then reports
  "confirmation pending".
- A token is consumed before the backend call. A backend failure is
  reported and the token is not restored: the user starts over.
- The final confirmation email may fail without undoing the change.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from src.components.backends.models import Action
from src.components.backends.ports import BackendPort
from src.components.lists.models import MailingList, UnknownListError
from src.components.subscription.models import (
    EMAIL_REGEX,
    MAX_EMAIL_LENGTH,
    REPEATED_SEPARATORS,
    AbuseRejectedError,
    BackendError,
    ConfirmInput,
    FormValidationError,
    NotificationError,
    PendingRequest,
    PipelineResult,
    PipelineState,
    ResultCode,
    SubscriptionError,
    SubscriptionForm,
    TokenInvalidError,
)
from src.components.subscription.ports import (
    CsrfPort,
    ListRegistryPort,
    NotifierPort,
    RateLimiterPort,
)
from src.components.tokens import Token, TokenPayload, TokenStorePort, TokenType

logger = logging.getLogger(__name__)

TOKEN_TYPES: dict[Action, TokenType] = {
    Action.SUBSCRIBE: TokenType.SUBSCRIBE,
    Action.UNSUBSCRIBE: TokenType.UNSUBSCRIBE,
}
ACTIONS: dict[TokenType, Action] = {v: k for k, v in TOKEN_TYPES.items()}


# --- Pure Functions (Functional Core) ---


def normalize_email(email: str | None) -> str:
    return email.strip().lower() if email else ""


def is_valid_email(email: str) -> bool:
    """Format check on an already normalized address."""
    if not email or len(email) > MAX_EMAIL_LENGTH:
        return False
    if REPEATED_SEPARATORS.search(email):
        return False
    return EMAIL_REGEX.match(email) is not None


def validate_email(email: str | None) -> str:
    """
    Normalize and validate an email address.

    Raises FormValidationError(INVALID_EMAIL) when blank or malformed.
    """
    normalized = normalize_email(email)
    if not normalized:
        raise FormValidationError(ResultCode.INVALID_EMAIL, "Email address is required")
    if not is_valid_email(normalized):
        raise FormValidationError(
            ResultCode.INVALID_EMAIL, "Invalid email format", email=normalized
        )
    return normalized


# --- Pipeline (Orchestration Layer) ---


class SubscriptionPipeline:
    def __init__(
        self,
        *,
        tokens: TokenStorePort,
        rate_limiter: RateLimiterPort,
        csrf: CsrfPort,
        lists: ListRegistryPort,
        backends: Mapping[str, BackendPort],
        notifier: NotifierPort,
    ) -> None:
        self.tokens = tokens
        self.rate_limiter = rate_limiter
        self.csrf = csrf
        self.lists = lists
        self.backends = backends
        self.notifier = notifier

    # --- Submitted → DuplicateChecked ---

    def screen(self, form: SubscriptionForm) -> PendingRequest:
        """
        Run the cheap, local checks on a submitted form.

        Raises FormValidationError or AbuseRejectedError.
        """
        email = normalize_email(form.email)
        if not email:
            raise FormValidationError(ResultCode.INVALID_EMAIL, "Email address is required")

        if not self.csrf.validate(form.csrf_token, form.ip):
            logger.warning("CSRF validation failed for IP %s", form.ip)
            raise AbuseRejectedError(
                ResultCode.CSRF_INVALID, "Security token validation failed", email=email
            )
        logger.debug("%s: %s", PipelineState.CSRF_CHECKED.value, email)

        if not self.rate_limiter.admit(form.ip):
            raise AbuseRejectedError(
                ResultCode.RATE_LIMITED, "Too many requests from this address", email=email
            )
        logger.debug("%s: %s", PipelineState.RATE_CHECKED.value, email)

        if form.website and form.website.strip():
            logger.warning("Spam detected: honeypot field filled from IP %s", form.ip)
            raise AbuseRejectedError(
                ResultCode.SPAM_DETECTED, "Submission identified as spam", email=email
            )

        email = validate_email(email)
        mailing_list = self._resolve_list(form.mailing_list, email)

        return PendingRequest(
            email=email,
            mailing_list=mailing_list.address,
            action=form.action,
            name=form.name.strip() or None,
            lang=form.lang,
            ip=form.ip,
        )

    def _resolve_list(self, address: str, email: str = "") -> MailingList:
        address = (address or "").strip()
        if not address:
            known = self.lists.all()
            if len(known) == 1:
                return known[0]
        else:
            found = self.lists.get(address)
            if found is not None:
                return found
        raise FormValidationError(
            ResultCode.UNKNOWN_LIST,
            f"Unknown mailing list: {address or '(none)'}",
            email=email,
            mailing_list=address,
        )

    def _backend_for(self, mailing_list: MailingList) -> BackendPort:
        try:
            return self.backends[mailing_list.backend]
        except KeyError:
            raise BackendError(
                f"No backend {mailing_list.backend!r} for list {mailing_list.address}",
                mailing_list=mailing_list.address,
            ) from None

    # --- DuplicateChecked → EmailSent ---

    def request_confirmation(self, request: PendingRequest) -> PipelineResult:
        """
        Issue a confirmation token and email the link.

        Raises NotificationError when the email cannot be sent.
        """
        mailing_list = self._resolve_list(request.mailing_list, request.email)
        token_type = TOKEN_TYPES[request.action]

        def outcome(code: ResultCode, state: PipelineState) -> PipelineResult:
            return PipelineResult(
                code=code,
                email=request.email,
                mailing_list=mailing_list.address,
                state=state,
            )

        subscribed = self._backend_for(mailing_list).check_subscribed(mailing_list, request.email)
        if request.action is Action.SUBSCRIBE and subscribed:
            logger.info("%s is already subscribed to %s", request.email, mailing_list.address)
            return outcome(ResultCode.ALREADY_SUBSCRIBED, PipelineState.DUPLICATE_CHECKED)
        if request.action is Action.UNSUBSCRIBE and not subscribed:
            logger.info("%s is not subscribed to %s", request.email, mailing_list.address)
            return outcome(ResultCode.NOT_SUBSCRIBED, PipelineState.DUPLICATE_CHECKED)

        key = self.tokens.create_if_absent(
            token_type,
            TokenPayload(
                email=request.email,
                name=request.name,
                mailing_list=mailing_list.address,
                ip=request.ip,
            ),
        )
        if key is None:
            logger.info("Confirmation already pending for %s", request.email)
            return outcome(ResultCode.CONFIRMATION_PENDING, PipelineState.DUPLICATE_CHECKED)
        logger.debug("%s: %s token for %s", PipelineState.TOKEN_ISSUED.value, token_type.value, request.email)

        sent = self.notifier.send_confirmation_request(request, key)
        if not sent.delivered:
            logger.error("Failed to send confirmation email to %s: %s", request.email, sent.error)
            raise NotificationError(
                sent.error or "Confirmation email could not be sent",
                email=request.email,
                mailing_list=mailing_list.address,
            )

        logger.info("Confirmation email sent to %s for %s", request.email, mailing_list.address)
        return outcome(ResultCode.CONFIRMATION_SENT, PipelineState.EMAIL_SENT)

    # --- LinkVisited → Completed ---

    def peek_action(self, token_key: str | None) -> Action | None:
        """Action a confirmation token stands for, without consuming it."""
        token = self.tokens.peek(token_key)
        if token is None:
            return None
        return ACTIONS.get(token.type)

    def _consume(self, inp: ConfirmInput) -> Token:
        if inp.expected_action is not None:
            expected = TOKEN_TYPES[inp.expected_action]
        else:
            # Only confirmation tokens may be redeemed here, never CSRF ones
            action = self.peek_action(inp.token)
            if action is None:
                raise TokenInvalidError("Invalid or expired confirmation link")
            expected = TOKEN_TYPES[action]

        token = self.tokens.consume(inp.token, expected)
        if token is None:
            raise TokenInvalidError("Invalid or expired confirmation link")
        return token

    def confirm(self, inp: ConfirmInput) -> PipelineResult:
        """
        Redeem a confirmation link and apply the change at the backend.

        Raises TokenInvalidError, FormValidationError or BackendError.
        """
        token = self._consume(inp)
        action = ACTIONS[token.type]
        payload = token.payload
        logger.debug("%s: %s for %s", PipelineState.TOKEN_CONSUMED.value, action.value, payload.email)

        mailing_list = self._resolve_list(payload.mailing_list or "", payload.email or "")
        backend = self._backend_for(mailing_list)

        if action is Action.SUBSCRIBE:
            result = backend.subscribe(mailing_list, payload.email, payload.name)
        else:
            result = backend.unsubscribe(mailing_list, payload.email)
        logger.debug("%s: %s", PipelineState.BACKEND_CALLED.value, result)

        request = PendingRequest(
            email=payload.email,
            mailing_list=mailing_list.address,
            action=action,
            name=payload.name,
            lang=inp.lang,
            ip=payload.ip or "",
        )

        if result.not_found:
            return PipelineResult(
                code=ResultCode.NOT_FOUND,
                email=payload.email,
                mailing_list=mailing_list.address,
                message=result.message,
            )
        if not result.success:
            raise BackendError(
                result.message, email=payload.email, mailing_list=mailing_list.address
            )

        if action is Action.SUBSCRIBE:
            count = self._count(self.lists.increment, mailing_list.address)
            if count is not None:
                self._maybe_warn(mailing_list, count)
            code = ResultCode.SUBSCRIBED
        else:
            self._count(self.lists.decrement, mailing_list.address)
            code = ResultCode.UNSUBSCRIBED

        final = self.notifier.send_action_confirmed(request, action)
        if not final.delivered:
            logger.warning("Could not send %s confirmation to %s: %s", action.value, payload.email, final.error)

        logger.info("%s %sd on %s", payload.email, action.value, mailing_list.address)
        return PipelineResult(
            code=code,
            email=payload.email,
            mailing_list=mailing_list.address,
            message=result.message,
        )

    def _count(self, update: Callable[[str], int], address: str) -> int | None:
        # A refresh may drop the list after the backend change was applied
        try:
            return update(address)
        except UnknownListError:
            logger.warning("List %s no longer registered; counter not updated", address)
            return None

    def _maybe_warn(self, mailing_list: MailingList, count: int) -> None:
        every = mailing_list.warn_every
        if count > 0 and every > 0 and count % every == 0:
            logger.warning("%d new subscribers on the mailing list %s", count, mailing_list.address)
            self.notifier.send_milestone_warning(mailing_list, count)


# --- Run Handlers ---


def run_submit(inp: SubscriptionForm, pipeline: SubscriptionPipeline) -> PipelineResult:
    return pipeline.request_confirmation(pipeline.screen(inp))


def run(
    inp: SubscriptionForm | PendingRequest | ConfirmInput,
    *,
    pipeline: SubscriptionPipeline,
) -> PipelineResult:
    """
    Main component entry point (Atomic Component Pattern).

    Converts the pipeline's error taxonomy into results; anything else
    unexpected becomes OPERATION_FAILED. Never raises.
    """
    try:
        if isinstance(inp, SubscriptionForm):
            return run_submit(inp, pipeline)
        elif isinstance(inp, PendingRequest):
            return pipeline.request_confirmation(inp)
        elif isinstance(inp, ConfirmInput):
            return pipeline.confirm(inp)
        else:
            raise ValueError(f"Unknown input type: {type(inp)}")
    except SubscriptionError as e:
        return e.to_result()
    except Exception:
        logger.exception("Unexpected error in subscription pipeline")
        return PipelineResult(code=ResultCode.OPERATION_FAILED, state=PipelineState.FAILED)
