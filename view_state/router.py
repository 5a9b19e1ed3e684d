from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from diagnostics.telemetry import emit_metric

from .store import StateStore
from .transitions import TransitionController
from .types import AppState, FormData, ResultsData, TransitionOptions, ValidationIssue, ViewId

logger = logging.getLogger(__name__)

ResultIndex = Dict[str, ValidationIssue]


class IntentKind(str, Enum):
    GO = "go"
    REPLACE = "replace"
    BACK = "back"


@dataclass(frozen=True)
class NavigationIntent:
    kind: IntentKind
    view: Optional[ViewId] = None
    params: Optional[Dict[str, Any]] = None


def build_result_index(results: Optional[ResultsData]) -> Optional[ResultIndex]:
    if results is None:
        return None
    index: ResultIndex = {}
    for issue in results.issues:
        index[issue.node_id] = issue
    return index


def can_run_validation(form: FormData) -> bool:
    return form.selected_design_system_id is not None and bool(form.validation_options)


class NavigationRouter:
    """Turns navigation intents and inspector selections into transitions."""

    def __init__(self, store: StateStore, transitions: TransitionController) -> None:
        self.store = store
        self.transitions = transitions
        self._indexed_results: Optional[ResultsData] = None
        self._result_index: Optional[ResultIndex] = None
        self._unsubscribe = store.subscribe(self._on_state_changed)
        self._on_state_changed(store.get_state())

    @property
    def result_index(self) -> Optional[ResultIndex]:
        return self._result_index

    def close(self) -> None:
        self._unsubscribe()

    def _on_state_changed(self, state: AppState) -> None:
        if state.results_data is self._indexed_results:
            return
        self._indexed_results = state.results_data
        self._result_index = build_result_index(state.results_data)
        if self._result_index is not None:
            logger.debug("result index rebuilt with %d nodes", len(self._result_index))

    def can_run_validation(self, form: Optional[FormData] = None) -> bool:
        return can_run_validation(form if form is not None else self.store.get_form_data())

    async def navigate(self, intent: NavigationIntent) -> bool:
        if intent.kind == IntentKind.BACK:
            return await self.go_back()
        if intent.view is None:
            logger.warning("navigation intent %s has no target view", intent.kind.value)
            return False
        preserve = intent.kind == IntentKind.GO
        return await self.transitions.switch_to_view(
            intent.view,
            TransitionOptions(preserve_data=preserve, data=intent.params),
        )

    async def go(self, view: ViewId, params: Optional[Dict[str, Any]] = None) -> bool:
        return await self.navigate(NavigationIntent(IntentKind.GO, ViewId(view), params))

    async def replace(self, view: ViewId, params: Optional[Dict[str, Any]] = None) -> bool:
        return await self.navigate(NavigationIntent(IntentKind.REPLACE, ViewId(view), params))

    async def go_back(self) -> bool:
        if self.transitions.in_progress:
            logger.warning("back navigation ignored: a transition is in progress")
            return False
        history = self.store.history
        if not history:
            logger.warning("no history to go back to, falling back to the form view")
            return await self.replace(ViewId.FORM)

        # The entry stays on the stack until the switch has committed.
        entry = history[-1]
        target, params = entry.view, entry.params
        if target == ViewId.RESULTS and not self.store.has_results():
            logger.warning("cannot return to results: no results data, falling back to the form view")
            target, params = ViewId.FORM, None
        if target == self.store.get_current_view():
            logger.debug("history entry %s is already showing, dropping it", target.value)
            self.store.pop_history()
            return False

        switched = await self.transitions.switch_to_view(
            target,
            TransitionOptions(preserve_data=False, data=params),
        )
        if switched:
            self.store.pop_history()
        return switched

    async def expand(self) -> bool:
        """Leave the collapsed inspector for the results list, or the form when there are none."""
        if self.store.has_results():
            return await self.go(ViewId.RESULTS)
        return await self.go(ViewId.FORM)

    async def on_asset_selected(self, node_id: Optional[str], node_name: Optional[str] = None) -> bool:
        if self.store.get_current_view() != ViewId.COLLAPSED:
            logger.debug("selection %s ignored outside the collapsed inspector", node_id)
            return False
        results = self.store.get_results_data()
        run_id = results.run_id if results is not None else ""
        index = self._result_index
        if not node_id or index is None:
            logger.warning("invalid selection: node_id=%r has_result_index=%s", node_id, index is not None)
            return await self.go(
                ViewId.OUT_OF_SCOPE_MODAL,
                {"nodeId": node_id, "nodeName": node_name, "runId": run_id},
            )

        hit = index.get(node_id)
        emit_metric("inspector.select", hit=hit is not None, run_id=run_id)
        if hit is not None:
            return await self.go(ViewId.ISSUE_DETAILS, {"nodeId": node_id, "issue": hit.to_dict()})
        return await self.go(
            ViewId.OUT_OF_SCOPE_MODAL,
            {"nodeId": node_id, "nodeName": node_name or "", "runId": run_id},
        )
