from __future__ import annotations

from datetime import datetime, timezone

import pytest

from view_state.store import StateStore
from view_state.types import (
    DEFAULT_VALIDATION_OPTIONS,
    DesignSystemInfo,
    HistoryEntry,
    ResultsData,
    ViewId,
)


def _info(system_id: str = "lib-1") -> DesignSystemInfo:
    return DesignSystemInfo(id=system_id, name="Core Tokens")


def _results() -> ResultsData:
    return ResultsData(
        issues=(),
        total_nodes_scanned=3,
        scope="Page 1",
        generated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        run_id="run-1",
    )


def test_initial_state_is_first_run() -> None:
    store = StateStore()
    state = store.get_state()
    assert state.current_view == ViewId.FORM
    assert state.previous_view is None
    assert state.results_data is None
    assert state.history == ()
    assert state.form_data.validation_options == DEFAULT_VALIDATION_OPTIONS
    assert not store.is_design_system_attached()


def test_set_current_view_tracks_previous() -> None:
    store = StateStore()
    store.set_current_view(ViewId.RESULTS)
    assert store.get_previous_view() == ViewId.FORM

    store.set_current_view(ViewId.COLLAPSED, preserve_previous=False, params={"a": 1})
    assert store.get_current_view() == ViewId.COLLAPSED
    assert store.get_previous_view() == ViewId.FORM
    assert store.get_state().view_params == {"a": 1}


def test_subscribers_notified_synchronously_in_order() -> None:
    store = StateStore()
    seen: list[tuple[str, ViewId]] = []
    store.subscribe(lambda state: seen.append(("first", state.current_view)))
    store.subscribe(lambda state: seen.append(("second", state.current_view)))

    store.set_current_view(ViewId.RESULTS)

    assert seen == [("first", ViewId.RESULTS), ("second", ViewId.RESULTS)]


def test_unsubscribe_is_idempotent() -> None:
    store = StateStore()
    seen = []
    unsubscribe = store.subscribe(seen.append)
    unsubscribe()
    unsubscribe()
    store.set_current_view(ViewId.RESULTS)
    assert seen == []


def test_failing_listener_does_not_stop_notification(caplog) -> None:
    store = StateStore()
    seen = []

    def _boom(_state) -> None:
        raise RuntimeError("listener exploded")

    store.subscribe(_boom)
    store.subscribe(seen.append)
    with caplog.at_level("ERROR", logger="view_state"):
        store.set_current_view(ViewId.RESULTS)

    assert len(seen) == 1
    assert "listener exploded" in caplog.text


def test_attach_and_detach_move_id_and_info_together() -> None:
    store = StateStore()
    store.attach_design_system(_info())
    form = store.get_form_data()
    assert form.selected_design_system_id == "lib-1"
    assert form.attached_system_info == _info()

    store.detach_design_system()
    form = store.get_form_data()
    assert form.selected_design_system_id is None
    assert form.attached_system_info is None


def test_half_attach_is_rejected_and_state_unchanged() -> None:
    store = StateStore()
    seen = []
    store.subscribe(seen.append)

    with pytest.raises(ValueError):
        store.update_form_data(selected_design_system_id="lib-1")
    with pytest.raises(ValueError):
        store.update_form_data(selected_design_system_id="lib-2", attached_system_info=_info("lib-1"))

    assert store.get_form_data().selected_design_system_id is None
    assert seen == []


def test_validation_options_toggle() -> None:
    store = StateStore()
    store.set_validation_options(["spacings", "font-size"])
    store.toggle_validation_option("font-size")
    store.toggle_validation_option("corner-radius")
    assert store.get_form_data().validation_options == frozenset({"spacings", "corner-radius"})

    store.set_validation_options([])
    assert not store.has_validation_options()


def test_history_push_and_pop() -> None:
    store = StateStore()
    assert store.pop_history() is None

    store.push_history(HistoryEntry(ViewId.FORM))
    store.push_history(HistoryEntry(ViewId.RESULTS, {"x": 1}))
    assert [entry.view for entry in store.history] == [ViewId.FORM, ViewId.RESULTS]

    assert store.pop_history() == HistoryEntry(ViewId.RESULTS, {"x": 1})
    store.clear_history()
    assert store.history == ()


def test_reset_restores_first_run_defaults() -> None:
    store = StateStore()
    store.attach_design_system(_info())
    store.set_validation_options(["font-color"])
    store.set_results_data(_results())
    store.set_current_view(ViewId.RESULTS)
    store.push_history(HistoryEntry(ViewId.FORM))

    store.reset()

    state = store.get_state()
    assert state.current_view == ViewId.FORM
    assert state.previous_view is None
    assert state.history == ()
    assert state.results_data is None
    assert state.form_data.selected_design_system_id is None
    assert state.form_data.validation_options == DEFAULT_VALIDATION_OPTIONS


def test_results_set_and_clear() -> None:
    store = StateStore()
    results = _results()
    store.set_results_data(results)
    assert store.has_results()
    assert store.get_results_data() is results

    store.clear_results_data()
    assert not store.has_results()
