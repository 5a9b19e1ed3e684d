from __future__ import annotations

import asyncio

import pytest

from message_bridge import topics
from view_state.context import ViewStateContext
from view_state.message_handler import _parse_options, parse_issues
from view_state.surface import HeadlessSurface
from view_state.types import ViewId

LIBRARIES = [
    {"id": "lib-1", "name": "Core Tokens", "sourceKind": "library", "collections": [{"id": "c1", "name": "Spacing"}]},
    {"id": "local-1", "name": "Local", "sourceKind": "local"},
]

ISSUES = [
    {
        "nodeId": "n1",
        "nodeName": "Card",
        "category": "spacing",
        "severity": "warning",
        "message": "Padding 13px is not a spacing token",
        "suggestion": "spacing/md",
    }
]


@pytest.fixture()
def ctx(bridge, recording_sleep) -> ViewStateContext:
    return ViewStateContext(HeadlessSurface(), bridge=bridge, sleep=recording_sleep)


def _send(ctx: ViewStateContext, msg_type: str, **payload) -> None:
    ctx.bridge.post(topics.CHANNEL_CORE, msg_type, payload, source="test")


async def _attach(ctx: ViewStateContext) -> None:
    _send(ctx, topics.LIBRARIES_LOADED, libraries=LIBRARIES)
    _send(ctx, topics.ATTACH_DESIGN_SYSTEM, libraryId="lib-1")
    await ctx.handler.drain()


def test_parse_options_accepts_lists_and_flag_maps() -> None:
    assert _parse_options(["spacings", "font-size"]) == ["spacings", "font-size"]
    assert sorted(_parse_options({"spacings": True, "font-size": False, "font-color": 1})) == ["font-color", "spacings"]
    assert _parse_options(None) == []


def test_parse_issues_skips_malformed_entries() -> None:
    issues = parse_issues(ISSUES + [{"category": "spacing"}, "junk", {"nodeId": "n2", "category": "nope"}])
    assert [issue.node_id for issue in issues] == ["n1"]
    assert parse_issues(None) == []


def test_get_libraries_asks_backend(ctx, backend_messages) -> None:
    async def _run() -> None:
        _send(ctx, topics.GET_LIBRARIES)
        await ctx.handler.drain()

    asyncio.run(_run())
    assert backend_messages.types == [topics.GET_SAVED_LIBRARIES]


def test_attach_flow(ctx, ui_messages, backend_messages) -> None:
    asyncio.run(_attach(ctx))

    form = ctx.get_state().form_data
    assert form.selected_design_system_id == "lib-1"
    assert form.attached_system_info.collections[0].name == "Spacing"
    assert backend_messages.of_type(topics.SELECT_LIBRARY)[0].payload == {"libraryId": "lib-1"}
    attached = ui_messages.of_type(topics.DESIGN_SYSTEM_ATTACHED)[0]
    assert attached.get("libraryId") == "lib-1"
    listed = ui_messages.of_type(topics.LIBRARIES_LIST)[0]
    assert [item["id"] for item in listed.get("libraries")] == ["lib-1", "local-1"]


def test_attach_unknown_library_posts_notice(ctx, ui_messages) -> None:
    async def _run() -> None:
        _send(ctx, topics.ATTACH_DESIGN_SYSTEM, libraryId="missing")
        await ctx.handler.drain()

    asyncio.run(_run())
    assert not ctx.get_state().form_data.selected_design_system_id
    assert ui_messages.of_type(topics.NOTICE)[0].get("level") == "warning"


def test_detach(ctx, ui_messages) -> None:
    async def _run() -> None:
        await _attach(ctx)
        _send(ctx, topics.DETACH_DESIGN_SYSTEM)
        await ctx.handler.drain()

    asyncio.run(_run())
    assert ctx.get_state().form_data.attached_system_info is None
    assert topics.DESIGN_SYSTEM_DETACHED in ui_messages.types


def test_run_validation_requires_design_system(ctx, ui_messages, backend_messages) -> None:
    async def _run() -> None:
        _send(ctx, topics.RUN_VALIDATION, options=["spacings"])
        await ctx.handler.drain()

    asyncio.run(_run())
    assert backend_messages.of_type(topics.RUN_DESIGN_TOKENS_CHECK) == []
    assert ui_messages.of_type(topics.NOTICE)


def test_run_validation_requires_options(ctx, backend_messages) -> None:
    async def _run() -> None:
        await _attach(ctx)
        _send(ctx, topics.RUN_VALIDATION, options=[])
        await ctx.handler.drain()

    asyncio.run(_run())
    assert backend_messages.of_type(topics.RUN_DESIGN_TOKENS_CHECK) == []


def test_run_validation_dispatches_check(ctx, ui_messages, backend_messages) -> None:
    async def _run() -> None:
        await _attach(ctx)
        _send(ctx, topics.RUN_VALIDATION, options={"font-size": True, "spacings": True})
        await ctx.handler.drain()

    asyncio.run(_run())
    check = backend_messages.of_type(topics.RUN_DESIGN_TOKENS_CHECK)[0]
    assert check.payload == {"options": ["font-size", "spacings"], "libraryId": "lib-1"}
    assert ui_messages.of_type(topics.SHOW_LOADING)[0].get("message") == "Running validation..."


def test_validation_results_navigate_to_results(ctx, ui_messages) -> None:
    async def _run() -> None:
        _send(ctx, topics.VALIDATION_RESULTS, issues=ISSUES, totalNodes=40, scope="Page 1", runId="r-9")
        await ctx.handler.drain()

    asyncio.run(_run())
    results = ctx.get_state().results_data
    assert results.run_id == "r-9"
    assert results.total_nodes_scanned == 40
    assert ctx.get_current_view() == ViewId.RESULTS
    change = ui_messages.of_type(topics.VIEW_CHANGE)[-1]
    assert change.get("data")["runId"] == "r-9"
    assert set(ctx.router.result_index) == {"n1"}


def test_validation_error_posts_notice(ctx, ui_messages) -> None:
    async def _run() -> None:
        _send(ctx, topics.VALIDATION_ERROR, message="Backend crashed")
        await ctx.handler.drain()

    asyncio.run(_run())
    assert ui_messages.types == [topics.HIDE_LOADING, topics.NOTICE]
    assert ui_messages.messages[-1].get("message") == "Backend crashed"


def test_selection_tracking_follows_collapsed_view(ctx, backend_messages) -> None:
    async def _run() -> None:
        _send(ctx, topics.VALIDATION_RESULTS, issues=ISSUES, totalNodes=1, scope="Page 1")
        await ctx.handler.drain()
        _send(ctx, topics.SELECT_NODE, nodeId="n1")
        await ctx.handler.drain()
        _send(ctx, topics.EXPAND_VIEW)
        await ctx.handler.drain()

    asyncio.run(_run())
    assert backend_messages.types == [
        topics.SELECT_AND_POSITION_NODE,
        topics.ENABLE_SELECTION_TRACKING,
        topics.DISABLE_SELECTION_TRACKING,
    ]
    assert ctx.get_current_view() == ViewId.RESULTS


def test_selection_changed_routes_in_collapsed_only(ctx) -> None:
    async def _run() -> None:
        _send(ctx, topics.VALIDATION_RESULTS, issues=ISSUES, totalNodes=1, scope="Page 1")
        await ctx.handler.drain()
        _send(ctx, topics.SELECTION_CHANGED, nodeId="n1")
        await ctx.handler.drain()
        assert ctx.get_current_view() == ViewId.RESULTS
        _send(ctx, topics.PLUGIN_MINIMIZED)
        await ctx.handler.drain()
        _send(ctx, topics.SELECTION_CHANGED, nodeId="n1")
        await ctx.handler.drain()

    asyncio.run(_run())
    assert ctx.get_current_view() == ViewId.ISSUE_DETAILS


def test_failed_transition_becomes_notice(bridge, ui_messages) -> None:
    async def _broken_sleep(_seconds: float) -> None:
        raise RuntimeError("animation host gone")

    ctx = ViewStateContext(HeadlessSurface(), bridge=bridge, sleep=_broken_sleep)

    async def _run() -> None:
        _send(ctx, topics.VALIDATION_RESULTS, issues=ISSUES, totalNodes=1, scope="Page 1")
        await ctx.handler.drain()

    asyncio.run(_run())
    notice = ui_messages.of_type(topics.NOTICE)[-1]
    assert notice.get("level") == "error"
    assert "animation host gone" in notice.get("message")
    assert ctx.get_current_view() == ViewId.FORM
    assert not ctx.transitions.in_progress


def test_unknown_message_is_ignored(ctx, ui_messages) -> None:
    async def _run() -> None:
        _send(ctx, "mystery-message", foo=1)
        await ctx.handler.drain()

    asyncio.run(_run())
    assert ui_messages.messages == []


def test_reset_message_restores_defaults(ctx) -> None:
    async def _run() -> None:
        await ctx.initialize()
        await _attach(ctx)
        _send(ctx, topics.RESET_STATE)
        await ctx.handler.drain()

    asyncio.run(_run())
    assert ctx.get_state().form_data.selected_design_system_id is None
    assert ctx.persistence.durable.data == {}
