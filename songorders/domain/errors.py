from __future__ import annotations

from typing import Iterable, List, Optional


class OrderPipelineError(RuntimeError):
    """
    Base of every typed failure the fulfillment core reports.

    `code` is a stable machine-readable slug, `status_code` is the HTTP
    status the API layer answers with.
    """

    default_code = "order_pipeline_error"
    default_status = 500

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message or (code or self.default_code))
        self.code = code or self.default_code
        self.status_code = status_code or self.default_status


class ValidationError(OrderPipelineError):
    default_code = "validation_error"
    default_status = 400


class ContentRejected(OrderPipelineError):
    default_code = "content_rejected"
    default_status = 422

    def __init__(self, terms: Iterable[str], *, message: str = "") -> None:
        self.terms: List[str] = list(terms)
        super().__init__(message or f"disallowed terms: {', '.join(self.terms)}")


class ProviderError(OrderPipelineError):
    default_code = "provider_error"
    default_status = 502

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        upstream_status: Optional[int] = None,
    ) -> None:
        super().__init__(message, code=code, status_code=status_code)
        self.upstream_status = upstream_status


class ProviderTimeout(ProviderError):
    default_code = "provider_timeout"
    default_status = 504


class InvalidTransition(OrderPipelineError):
    default_code = "invalid_transition"
    default_status = 409

    def __init__(self, current: str, trigger: str, *, message: str = "", code: Optional[str] = None) -> None:
        self.current = current
        self.trigger = trigger
        super().__init__(message or f"cannot {trigger} from {current}", code=code)


class AlreadyApproved(InvalidTransition):
    default_code = "already_approved"

    def __init__(self, order_id: str) -> None:
        self.order_id = order_id
        super().__init__("APPROVED", "approve", message=f"order {order_id} already has an approved lyric")


class NotFoundOrForbidden(OrderPipelineError):
    default_code = "not_found"
    default_status = 404


class LyricsAlreadyPersisted(RuntimeError):
    """Raised by the lyrics repo when the (order, version) constraint rejects a pair."""

    def __init__(self, order_id: str) -> None:
        super().__init__(f"lyrics already exist for order {order_id}")
        self.order_id = order_id
