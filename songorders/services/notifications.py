from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Protocol, Tuple
from uuid import UUID

from pywebpush import WebPushException, webpush

from songorders.domain.enums import NotificationStatus, OrderStatus
from songorders.domain.models import DispatchSummary, Order, PushEndpoint

logger = logging.getLogger("notification_dispatcher")


# status -> (title, body, body with {song_title}); the plain body is used when no title is known.
STATUS_MESSAGES: Dict[OrderStatus, Tuple[str, str, Optional[str]]] = {
    OrderStatus.PAID: (
        "Payment confirmed",
        "Your order is confirmed. We are writing your lyrics now.",
        None,
    ),
    OrderStatus.LYRICS_GENERATED: (
        "Your lyrics are ready!",
        "Two lyric drafts are waiting for you. Pick your favourite to start production.",
        None,
    ),
    OrderStatus.APPROVED: (
        "Lyrics approved",
        "Great choice! Your song is now in production.",
        None,
    ),
    OrderStatus.MUSIC_READY: (
        "Your song is ready!",
        "Your song is ready to play.",
        'Your song "{song_title}" is ready to play.',
    ),
}


def message_for_status(status: OrderStatus, *, song_title: Optional[str] = None) -> Optional[Tuple[str, str]]:
    entry = STATUS_MESSAGES.get(status)
    if entry is None:
        return None
    title, body, titled_body = entry
    if titled_body and song_title:
        body = titled_body.format(song_title=song_title)
    return title, body


class PushDeliveryError(RuntimeError):
    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class EndpointRegistry(Protocol):
    async def list_active(self, recipient_id: Optional[UUID] = None) -> List[PushEndpoint]:
        ...

    async def deactivate(self, endpoint_id: UUID) -> None:
        ...


class NotificationLogWriter(Protocol):
    async def insert(
        self,
        *,
        recipient_id: Optional[UUID],
        order_id: Optional[UUID],
        title: str,
        body: str,
        status: str,
        error_message: Optional[str],
    ) -> None:
        ...


class PushTransport(Protocol):
    async def send(self, endpoint: PushEndpoint, payload: Dict[str, Any]) -> None:
        ...


class WebPushTransport:
    """
    Web Push delivery (VAPID-signed, aes128gcm-encrypted) via pywebpush.

    pywebpush is blocking, so each send runs in a worker thread. Without a
    VAPID private key the transport reports itself unconfigured and the
    dispatcher skips delivery instead of burning subscriptions.
    """

    def __init__(
        self,
        *,
        vapid_private_key: str = "",
        vapid_subject: str = "",
        ttl_seconds: int = 86400,
        timeout_s: float = 10.0,
        requests_session: Any = None,
    ):
        self.vapid_private_key = vapid_private_key.strip()
        self.vapid_subject = vapid_subject.strip()
        self.ttl_seconds = int(ttl_seconds)
        self.timeout_s = timeout_s
        self._session = requests_session

    @property
    def configured(self) -> bool:
        return bool(self.vapid_private_key and self.vapid_subject)

    def _send_blocking(self, endpoint: PushEndpoint, payload: Dict[str, Any]) -> None:
        try:
            webpush(
                subscription_info={
                    "endpoint": endpoint.endpoint,
                    "keys": {"p256dh": endpoint.p256dh, "auth": endpoint.auth},
                },
                data=json.dumps(payload),
                vapid_private_key=self.vapid_private_key,
                # pywebpush fills aud/exp into this dict, so hand it a fresh one
                vapid_claims={"sub": self.vapid_subject},
                ttl=self.ttl_seconds,
                timeout=self.timeout_s,
                requests_session=self._session,
            )
        except WebPushException as e:
            status = getattr(e.response, "status_code", None)
            if status in (404, 410):
                raise PushDeliveryError("Subscription expired", status_code=status) from e
            if status is not None:
                raise PushDeliveryError(f"Status {status}", status_code=status) from e
            raise PushDeliveryError(f"push error: {e}") from e

    async def send(self, endpoint: PushEndpoint, payload: Dict[str, Any]) -> None:
        if not self.configured:
            raise PushDeliveryError("push transport is not configured")
        await asyncio.to_thread(self._send_blocking, endpoint, payload)


class NotificationDispatcher:
    def __init__(
        self,
        *,
        endpoints: EndpointRegistry,
        logs: NotificationLogWriter,
        transport: PushTransport,
        timeout_s: float = 10.0,
        max_concurrency: int = 8,
        icon_path: str = "/favicon.png",
        base_url: str = "",
    ):
        self.endpoints = endpoints
        self.logs = logs
        self.transport = transport
        self.timeout_s = float(timeout_s)
        self.max_concurrency = max(1, int(max_concurrency))
        self.icon_path = icon_path
        self.base_url = base_url.rstrip("/")

    def _payload(self, *, title: str, body: str, url: Optional[str], order_id: Optional[UUID]) -> Dict[str, Any]:
        return {
            "title": title,
            "body": body,
            "icon": self.icon_path,
            "badge": self.icon_path,
            "url": url or "/",
            "data": {"order_id": str(order_id) if order_id else None},
        }

    async def _deliver(self, sem: asyncio.Semaphore, ep: PushEndpoint, payload: Dict[str, Any]) -> Optional[str]:
        async with sem:
            try:
                await asyncio.wait_for(self.transport.send(ep, payload), timeout=self.timeout_s)
                logger.info("push sent endpoint_id=%s", ep.id)
                return None
            except asyncio.TimeoutError:
                err = f"timeout after {self.timeout_s:.0f}s"
            except Exception as e:
                err = str(e) or type(e).__name__

        logger.warning("push failed endpoint_id=%s err=%s", ep.id, err)
        try:
            await self.endpoints.deactivate(ep.id)
            logger.info("endpoint deactivated endpoint_id=%s", ep.id)
        except Exception:
            logger.exception("failed to deactivate endpoint_id=%s", ep.id)
        return err

    async def notify(
        self,
        *,
        title: str,
        body: str,
        recipient_id: Optional[UUID] = None,
        order_id: Optional[UUID] = None,
        url: Optional[str] = None,
    ) -> DispatchSummary:
        endpoints = await self.endpoints.list_active(recipient_id)

        if not endpoints:
            await self.logs.insert(
                recipient_id=recipient_id,
                order_id=order_id,
                title=title,
                body=body,
                status=NotificationStatus.no_subscriptions.value,
                error_message="No active subscriptions found",
            )
            return DispatchSummary(sent=0, total=0, status=NotificationStatus.no_subscriptions.value)

        if not getattr(self.transport, "configured", True):
            # a missing key is our fault, not the subscriber's: keep every endpoint active
            logger.error("push transport not configured, skipping %s endpoints order_id=%s", len(endpoints), order_id)
            await self.logs.insert(
                recipient_id=recipient_id,
                order_id=order_id,
                title=title,
                body=body,
                status=NotificationStatus.failed.value,
                error_message="Push transport not configured",
            )
            return DispatchSummary(
                sent=0,
                total=len(endpoints),
                errors=["Push transport not configured"],
                status=NotificationStatus.failed.value,
            )

        payload = self._payload(title=title, body=body, url=url, order_id=order_id)
        sem = asyncio.Semaphore(self.max_concurrency)
        outcomes = await asyncio.gather(*(self._deliver(sem, ep, payload) for ep in endpoints))

        errors = [f"Sub {ep.id}: {err}" for ep, err in zip(endpoints, outcomes) if err is not None]
        sent = len(endpoints) - len(errors)
        status = NotificationStatus.sent if sent > 0 else NotificationStatus.failed

        await self.logs.insert(
            recipient_id=recipient_id,
            order_id=order_id,
            title=title,
            body=body,
            status=status.value,
            error_message="; ".join(errors) if errors else None,
        )
        logger.info("dispatch completed sent=%s total=%s order_id=%s", sent, len(endpoints), order_id)
        return DispatchSummary(sent=sent, total=len(endpoints), errors=errors, status=status.value)

    async def notify_status(
        self,
        order: Order,
        status: OrderStatus,
        *,
        song_title: Optional[str] = None,
    ) -> Optional[DispatchSummary]:
        """
        Fire-and-forget hook for state transitions. Statuses outside
        STATUS_MESSAGES are ignored and nothing raised here reaches the caller.
        """
        message = message_for_status(status, song_title=song_title or order.song_title)
        if message is None:
            return None
        title, body = message
        url = f"{self.base_url}/orders/{order.id}" if self.base_url else f"/orders/{order.id}"
        try:
            return await self.notify(
                title=title,
                body=body,
                recipient_id=order.user_id,
                order_id=order.id,
                url=url,
            )
        except Exception:
            logger.exception("status notification failed order_id=%s status=%s", order.id, status.value)
            return None
