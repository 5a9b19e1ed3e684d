"""Headless walk through the view-state machine / smoke test."""

from __future__ import annotations

import asyncio

from message_bridge import topics

from .context import ViewStateContext
from .surface import HeadlessSurface
from .types import ViewId


async def _no_wait(_seconds: float) -> None:
    await asyncio.sleep(0)


async def run_demo() -> list[str]:
    surface = HeadlessSurface()
    ctx = ViewStateContext(surface, sleep=_no_wait)
    seen: list[str] = []
    ctx.bridge.subscribe(topics.CHANNEL_UI, lambda msg: seen.append(msg.type))
    ctx.bridge.subscribe(
        topics.CHANNEL_BACKEND,
        lambda msg: seen.append(f"backend:{msg.type}"),
    )
    await ctx.initialize()

    def send(msg_type: str, **payload) -> None:
        ctx.bridge.post(topics.CHANNEL_CORE, msg_type, payload, source="demo")

    print("[demo] attaching a design system")
    send(topics.LIBRARIES_LOADED, libraries=[{"id": "lib-1", "name": "Core Tokens", "sourceKind": "library"}])
    send(topics.ATTACH_DESIGN_SYSTEM, libraryId="lib-1")
    await ctx.handler.drain()
    assert ctx.can_run_validation()

    print("[demo] running validation")
    send(topics.RUN_VALIDATION, options=["spacings", "font-size"])
    send(
        topics.VALIDATION_RESULTS,
        issues=[
            {
                "nodeId": "1:2",
                "nodeName": "Card",
                "category": "spacing",
                "severity": "warning",
                "message": "Padding 13px is not a spacing token",
                "suggestion": "spacing/md (12px)",
            }
        ],
        totalNodes=40,
        scope="Page 1",
    )
    await ctx.handler.drain()
    assert ctx.get_current_view() == ViewId.RESULTS

    print("[demo] collapsing and inspecting selections")
    send(topics.PLUGIN_MINIMIZED)
    await ctx.handler.drain()
    send(topics.SELECTION_CHANGED, nodeId="1:2", nodeName="Card")
    await ctx.handler.drain()
    assert ctx.get_current_view() == ViewId.ISSUE_DETAILS
    send(topics.GO_BACK)
    await ctx.handler.drain()
    send(topics.SELECTION_CHANGED, nodeId="9:9", nodeName="Logo")
    await ctx.handler.drain()
    assert ctx.get_current_view() == ViewId.OUT_OF_SCOPE_MODAL

    print("[demo] walking back")
    for _ in range(3):
        send(topics.GO_BACK)
        await ctx.handler.drain()
    assert ctx.get_current_view() == ViewId.FORM
    await ctx.shutdown()
    return seen


def main() -> None:
    seen = asyncio.run(run_demo())
    print(f"[demo] {len(seen)} messages exchanged")
    print("[demo] view state demo complete")


if __name__ == "__main__":
    main()
