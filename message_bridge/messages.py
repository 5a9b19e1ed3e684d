from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(slots=True)
class MessageEnvelope:
    """Typed envelope for all traffic crossing the plugin boundary."""

    msg_id: str
    type: str
    channel: str
    timestamp: str
    source: str
    payload: Dict[str, Any] = field(default_factory=dict)
    trace_id: str = ""

    def get(self, key: str, default: Any = None) -> Any:
        return self.payload.get(key, default)

    def to_wire(self) -> Dict[str, Any]:
        """Flatten to the host wire form ``{type, ...payload}``."""
        wire = dict(self.payload)
        wire["type"] = self.type
        return wire

    def to_dict(self) -> Dict[str, Any]:
        return {
            "msg_id": self.msg_id,
            "type": self.type,
            "channel": self.channel,
            "timestamp": self.timestamp,
            "source": self.source,
            "payload": dict(self.payload),
            "trace_id": self.trace_id,
        }


def split_wire(data: Optional[Dict[str, Any]]) -> tuple[str, Dict[str, Any]]:
    if not isinstance(data, dict):
        raise ValueError("wire message must be a dict")
    msg_type = data.get("type")
    if not isinstance(msg_type, str) or not msg_type:
        raise ValueError("wire message is missing its type")
    payload = {key: value for key, value in data.items() if key != "type"}
    return msg_type, payload
