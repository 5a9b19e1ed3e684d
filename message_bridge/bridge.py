from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from .messages import MessageEnvelope, split_wire

logger = logging.getLogger(__name__)

Handler = Callable[[MessageEnvelope], None]


def _iso_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class MessageBridge:
    """In-process channel carrying tagged envelopes between the core and its collaborators.

    Each channel delivers synchronously, in subscription order, so traffic is
    ordered per direction.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._subscribers: Dict[str, tuple[str, Handler]] = {}
        self._channel_index: Dict[str, Dict[str, None]] = {}

    def subscribe(self, channel: str, handler: Handler) -> str:
        sub_id = str(uuid.uuid4())
        with self._lock:
            self._subscribers[sub_id] = (channel, handler)
            self._channel_index.setdefault(channel, {})[sub_id] = None
        return sub_id

    def unsubscribe(self, sub_id: str) -> None:
        with self._lock:
            channel, _ = self._subscribers.pop(sub_id, (None, None))
            if channel and channel in self._channel_index:
                self._channel_index[channel].pop(sub_id, None)
                if not self._channel_index[channel]:
                    self._channel_index.pop(channel, None)

    def post(
        self,
        channel: str,
        msg_type: str,
        payload: Optional[Dict[str, Any]] = None,
        *,
        source: str = "core",
        trace_id: Optional[str] = None,
    ) -> MessageEnvelope:
        envelope = self._build_envelope(channel, msg_type, payload, source, trace_id)
        handlers = self._copy_handlers(channel)
        if not handlers:
            logger.debug("message_bridge no subscriber for %s on %s", msg_type, channel)
        for handler in handlers:
            try:
                handler(envelope)
            except Exception as exc:
                logger.error("message_bridge handler error on %s/%s: %s", channel, msg_type, exc)
        return envelope

    def post_wire(self, channel: str, data: Dict[str, Any], *, source: str) -> MessageEnvelope:
        """Deliver a raw ``{type, ...payload}`` dict as received from the host."""
        msg_type, payload = split_wire(data)
        return self.post(channel, msg_type, payload, source=source)

    def has_subscribers(self, channel: str) -> bool:
        with self._lock:
            return bool(self._channel_index.get(channel))

    def _build_envelope(
        self,
        channel: str,
        msg_type: str,
        payload: Optional[Dict[str, Any]],
        source: str,
        trace_id: Optional[str],
    ) -> MessageEnvelope:
        body = payload if isinstance(payload, dict) else {}
        return MessageEnvelope(
            msg_id=str(uuid.uuid4()),
            type=msg_type,
            channel=channel,
            timestamp=_iso_timestamp(),
            source=source,
            payload=dict(body),
            trace_id=trace_id or str(uuid.uuid4()),
        )

    def _copy_handlers(self, channel: str) -> list[Handler]:
        with self._lock:
            sub_ids = list(self._channel_index.get(channel, {}))
            handlers = [self._subscribers[sid][1] for sid in sub_ids if sid in self._subscribers]
        return handlers
