from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Optional

from .types import (
    DEFAULT_VALIDATION_OPTIONS,
    AppState,
    DesignSystemInfo,
    FormData,
    HistoryEntry,
    ResultsData,
    ViewId,
    normalize_options,
)

logger = logging.getLogger(__name__)

Listener = Callable[[AppState], None]


class StateStore:
    """Authoritative, observable container for view, form, results and history state.

    Every mutation notifies subscribers synchronously, in subscription order,
    before the mutating call returns.
    """

    def __init__(self) -> None:
        self._current_view = ViewId.FORM
        self._previous_view: Optional[ViewId] = None
        self._view_params: Optional[Dict[str, Any]] = None
        self._form = FormData()
        self._results: Optional[ResultsData] = None
        self._history: List[HistoryEntry] = []
        self._listeners: List[Listener] = []

    # Snapshots
    def get_state(self) -> AppState:
        return AppState(
            current_view=self._current_view,
            previous_view=self._previous_view,
            view_params=dict(self._view_params) if self._view_params is not None else None,
            form_data=self._form,
            results_data=self._results,
            history=tuple(self._history),
        )

    def get_current_view(self) -> ViewId:
        return self._current_view

    def get_previous_view(self) -> Optional[ViewId]:
        return self._previous_view

    def get_form_data(self) -> FormData:
        return self._form

    def get_results_data(self) -> Optional[ResultsData]:
        return self._results

    @property
    def history(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._history)

    # View
    def set_current_view(
        self,
        view: ViewId,
        preserve_previous: bool = True,
        params: Optional[Dict[str, Any]] = None,
    ) -> None:
        view = ViewId(view)
        if preserve_previous:
            self._previous_view = self._current_view
        self._current_view = view
        self._view_params = dict(params) if params is not None else None
        self._notify()

    # History
    def push_history(self, entry: HistoryEntry) -> None:
        self._history.append(entry)
        self._notify()

    def pop_history(self) -> Optional[HistoryEntry]:
        if not self._history:
            return None
        entry = self._history.pop()
        self._notify()
        return entry

    def clear_history(self) -> None:
        self._history.clear()
        self._notify()

    # Form data
    def update_form_data(self, **changes: Any) -> None:
        if "validation_options" in changes:
            changes["validation_options"] = normalize_options(changes["validation_options"])
        merged = replace(self._form, **changes)
        if not merged.is_consistent():
            raise ValueError(
                "selected_design_system_id and attached_system_info must be attached and detached together"
            )
        self._form = merged
        self._notify()

    def attach_design_system(self, info: DesignSystemInfo) -> None:
        self.update_form_data(selected_design_system_id=info.id, attached_system_info=info)

    def detach_design_system(self) -> None:
        self.update_form_data(selected_design_system_id=None, attached_system_info=None)

    def set_validation_options(self, options: Iterable[str]) -> None:
        self.update_form_data(validation_options=options)

    def toggle_validation_option(self, option: str) -> None:
        current = set(self._form.validation_options)
        if option in current:
            current.discard(option)
        else:
            current.add(option)
        self.set_validation_options(current)

    def is_design_system_attached(self) -> bool:
        return self._form.selected_design_system_id is not None

    def has_validation_options(self) -> bool:
        return bool(self._form.validation_options)

    # Results
    def set_results_data(self, data: ResultsData) -> None:
        self._results = data
        self._notify()

    def clear_results_data(self) -> None:
        self._results = None
        self._notify()

    def has_results(self) -> bool:
        return self._results is not None

    def reset(self) -> None:
        self._current_view = ViewId.FORM
        self._previous_view = None
        self._view_params = None
        self._form = FormData(validation_options=DEFAULT_VALIDATION_OPTIONS)
        self._results = None
        self._history.clear()
        self._notify()

    # Subscriptions
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                return

        return _unsubscribe

    def _notify(self) -> None:
        snapshot = self.get_state()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as exc:
                logger.error("state listener failed: %s", exc)
