"""
Subscription service: front door of the double opt-in pipeline.

In sync mode every step runs on the caller's thread. In queued mode the
form is screened on the caller's thread and the rest is handed to the
per-action queues; the caller waits for the worker's result.
"""

from __future__ import annotations

import logging
from concurrent.futures import CancelledError

from src.adapters.action_queues import ActionQueues
from src.components.subscription import (
    ConfirmInput,
    PipelineResult,
    PipelineState,
    ResultCode,
    SubscriptionError,
    SubscriptionForm,
    SubscriptionPipeline,
    TokenInvalidError,
    WorkKind,
    run,
)
from src.rules.models import PipelineRules

logger = logging.getLogger(__name__)


def _failed(message: str = "", email: str = "") -> PipelineResult:
    return PipelineResult(
        code=ResultCode.OPERATION_FAILED,
        email=email,
        message=message,
        state=PipelineState.FAILED,
    )


class SubscriptionService:
    def __init__(
        self,
        pipeline: SubscriptionPipeline,
        queues: ActionQueues | None = None,
        result_timeout: float = 30.0,
    ) -> None:
        self.pipeline = pipeline
        self.queues = queues
        self.result_timeout = result_timeout

    @classmethod
    def from_rules(cls, pipeline: SubscriptionPipeline, rules: PipelineRules) -> SubscriptionService:
        queues = None
        if rules.mode == "queued":
            queues = ActionQueues(
                lambda payload: run(payload, pipeline=pipeline),
                queue_size=rules.queue_size,
                enqueue_timeout=rules.enqueue_timeout_seconds,
            )
        return cls(pipeline, queues, rules.result_timeout_seconds)

    @property
    def queued(self) -> bool:
        return self.queues is not None

    def start(self) -> None:
        if self.queues is not None:
            self.queues.start()

    def stop(self) -> None:
        if self.queues is not None:
            self.queues.stop()

    def submit(self, form: SubscriptionForm) -> PipelineResult:
        """Handle a subscribe or unsubscribe form."""
        if self.queues is None:
            return run(form, pipeline=self.pipeline)

        try:
            request = self.pipeline.screen(form)
        except SubscriptionError as e:
            return e.to_result()
        except Exception:
            logger.exception("Unexpected error while screening a form")
            return _failed()

        return self._dispatch(WorkKind.request_for(request.action), request, request.email)

    def confirm(self, inp: ConfirmInput) -> PipelineResult:
        """Handle a visited confirmation link."""
        if self.queues is None:
            return run(inp, pipeline=self.pipeline)

        # Side-effect free; the worker does the atomic consume
        action = inp.expected_action or self.pipeline.peek_action(inp.token)
        if action is None:
            return TokenInvalidError("Invalid or expired confirmation link").to_result()

        return self._dispatch(WorkKind.confirm_for(action), inp)

    def _dispatch(self, kind: WorkKind, payload: object, email: str = "") -> PipelineResult:
        if self.queues is None:
            return _failed(email=email)
        try:
            future = self.queues.submit(kind, payload)
        except SubscriptionError as e:
            e.email = e.email or email
            return e.to_result()
        except RuntimeError:
            logger.error("%s work submitted while queues are stopped", kind.value)
            return _failed(email=email)

        try:
            return future.result(timeout=self.result_timeout)
        except TimeoutError:
            logger.error("Timed out waiting for %s worker", kind.value)
            return _failed("Request is still being processed", email)
        except CancelledError:
            logger.warning("%s work cancelled at shutdown", kind.value)
            return _failed(email=email)
