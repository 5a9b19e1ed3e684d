from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator, List

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from diagnostics import telemetry, tracing  # noqa: E402
from message_bridge import MessageBridge, MessageEnvelope, topics  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_diagnostics() -> Iterator[None]:
    telemetry.set_telemetry_enabled(False)
    telemetry.clear_metrics()
    tracing.clear_spans()
    yield
    telemetry.set_telemetry_enabled(None)
    telemetry.clear_metrics()
    tracing.clear_spans()


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays without waiting."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def total_ms(self) -> float:
        return round(sum(self.calls) * 1000.0, 6)


class Collector:
    def __init__(self, bridge: MessageBridge, channel: str) -> None:
        self.messages: List[MessageEnvelope] = []
        bridge.subscribe(channel, self.messages.append)

    @property
    def types(self) -> List[str]:
        return [msg.type for msg in self.messages]

    def of_type(self, msg_type: str) -> List[MessageEnvelope]:
        return [msg for msg in self.messages if msg.type == msg_type]

    def clear(self) -> None:
        self.messages.clear()


@pytest.fixture()
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def bridge() -> MessageBridge:
    return MessageBridge()


@pytest.fixture()
def ui_messages(bridge: MessageBridge) -> Collector:
    return Collector(bridge, topics.CHANNEL_UI)


@pytest.fixture()
def backend_messages(bridge: MessageBridge) -> Collector:
    return Collector(bridge, topics.CHANNEL_BACKEND)
