from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from message_bridge import MessageBridge, MessageEnvelope, topics

from .errors import ViewStateError
from .router import NavigationRouter
from .store import StateStore
from .transitions import TransitionController
from .types import AppState, DesignSystemInfo, ResultsData, ValidationIssue, ViewId, utc_now

logger = logging.getLogger(__name__)

ResetHook = Callable[[], Awaitable[None]]


def _parse_options(raw: Any) -> List[str]:
    if isinstance(raw, dict):
        return [str(key) for key, enabled in raw.items() if enabled]
    if isinstance(raw, (list, tuple, set, frozenset)):
        return [str(item) for item in raw]
    if isinstance(raw, str) and raw:
        return [raw]
    return []


def parse_issues(raw: Any) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    if not isinstance(raw, list):
        return issues
    for item in raw:
        if not isinstance(item, dict):
            continue
        try:
            issues.append(ValidationIssue.from_dict(item))
        except (KeyError, ValueError) as exc:
            logger.warning("skipping malformed issue %r: %s", item.get("nodeId"), exc)
    return issues


class MessageHandler:
    """Dispatches inbound envelopes from the UI and the backend to core operations."""

    def __init__(
        self,
        bridge: MessageBridge,
        store: StateStore,
        router: NavigationRouter,
        transitions: TransitionController,
        *,
        on_reset: Optional[ResetHook] = None,
    ) -> None:
        self.bridge = bridge
        self.store = store
        self.router = router
        self.transitions = transitions
        self._on_reset = on_reset
        self._libraries: Dict[str, DesignSystemInfo] = {}
        self._pending: Set["asyncio.Task[None]"] = set()
        self._tracking_selection = False
        self._routes: Dict[str, Callable[[MessageEnvelope], Awaitable[None]]] = {
            topics.GET_LIBRARIES: self._handle_get_libraries,
            topics.LIBRARIES_LOADED: self._handle_libraries_loaded,
            topics.LIBRARIES_ERROR: self._handle_libraries_error,
            topics.ATTACH_DESIGN_SYSTEM: self._handle_attach,
            topics.DETACH_DESIGN_SYSTEM: self._handle_detach,
            topics.RUN_VALIDATION: self._handle_run_validation,
            topics.VALIDATION_RESULTS: self._handle_validation_results,
            topics.VALIDATION_ERROR: self._handle_validation_error,
            topics.SELECT_NODE: self._handle_select_node,
            topics.PLUGIN_MINIMIZED: self._handle_plugin_minimized,
            topics.SELECTION_CHANGED: self._handle_selection_changed,
            topics.GO_BACK: self._handle_go_back,
            topics.EXPAND_VIEW: self._handle_expand,
            topics.RESET_STATE: self._handle_reset,
        }
        self._sub_id = bridge.subscribe(topics.CHANNEL_CORE, self._on_envelope)
        self._unsubscribe_store = store.subscribe(self._on_state_changed)

    @property
    def libraries(self) -> Dict[str, DesignSystemInfo]:
        return dict(self._libraries)

    def close(self) -> None:
        self.bridge.unsubscribe(self._sub_id)
        self._unsubscribe_store()

    def _on_envelope(self, envelope: MessageEnvelope) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error("message %s dropped: no running event loop", envelope.type)
            return
        task = loop.create_task(self.handle(envelope))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for every message handled so far, including ones they triggered."""
        while True:
            pending = [task for task in self._pending if not task.done()]
            if not pending:
                break
            await asyncio.gather(*pending)

    async def handle(self, envelope: MessageEnvelope) -> None:
        handler = self._routes.get(envelope.type)
        if handler is None:
            logger.info("unhandled message type: %s", envelope.type)
            return
        logger.debug("message received: %s from %s", envelope.type, envelope.source)
        try:
            await handler(envelope)
        except ViewStateError as exc:
            logger.error("navigation failed while handling %s: %s", envelope.type, exc)
            self._notice("error", f"Could not switch views: {exc}")
        except Exception as exc:
            logger.exception("handler for %s failed", envelope.type)
            self._notice("error", f"Something went wrong: {exc}")

    # Outbound helpers
    def _to_ui(self, msg_type: str, payload: Optional[Dict[str, Any]] = None) -> None:
        self.bridge.post(topics.CHANNEL_UI, msg_type, payload or {}, source="core")

    def _to_backend(self, msg_type: str, payload: Optional[Dict[str, Any]] = None) -> None:
        self.bridge.post(topics.CHANNEL_BACKEND, msg_type, payload or {}, source="core")

    def _notice(self, level: str, message: str) -> None:
        self._to_ui(topics.NOTICE, {"level": level, "message": message})

    def _on_state_changed(self, state: AppState) -> None:
        collapsed = state.current_view == ViewId.COLLAPSED
        if collapsed == self._tracking_selection:
            return
        self._tracking_selection = collapsed
        if collapsed:
            self._to_backend(topics.ENABLE_SELECTION_TRACKING)
        else:
            self._to_backend(topics.DISABLE_SELECTION_TRACKING)

    # Design systems
    async def _handle_get_libraries(self, envelope: MessageEnvelope) -> None:
        self._to_backend(topics.GET_SAVED_LIBRARIES)

    async def _handle_libraries_loaded(self, envelope: MessageEnvelope) -> None:
        raw = envelope.get("libraries") or []
        libraries: Dict[str, DesignSystemInfo] = {}
        for item in raw if isinstance(raw, list) else []:
            if not isinstance(item, dict):
                continue
            try:
                info = DesignSystemInfo.from_dict(item)
            except (KeyError, ValueError) as exc:
                logger.warning("skipping malformed library entry: %s", exc)
                continue
            libraries[info.id] = info
        self._libraries = libraries
        self._to_ui(topics.LIBRARIES_LIST, {"libraries": [info.to_dict() for info in libraries.values()]})

    async def _handle_libraries_error(self, envelope: MessageEnvelope) -> None:
        message = str(envelope.get("error") or "Could not load design systems")
        logger.warning("backend failed to list libraries: %s", message)
        self._notice("error", message)

    async def _handle_attach(self, envelope: MessageEnvelope) -> None:
        library_id = envelope.get("libraryId")
        info = self._libraries.get(library_id) if isinstance(library_id, str) else None
        if info is None:
            attached = self.store.get_form_data().attached_system_info
            if attached is not None and attached.id == library_id:
                info = attached
        if info is None:
            logger.warning("attach requested for unknown library %r", library_id)
            self._notice("warning", "That design system is no longer available")
            return
        self.store.attach_design_system(info)
        self._to_backend(topics.SELECT_LIBRARY, {"libraryId": info.id})
        self._to_ui(topics.DESIGN_SYSTEM_ATTACHED, {"libraryId": info.id, "designSystem": info.to_dict()})

    async def _handle_detach(self, envelope: MessageEnvelope) -> None:
        self.store.detach_design_system()
        self._to_ui(topics.DESIGN_SYSTEM_DETACHED, {})

    # Validation runs
    async def _handle_run_validation(self, envelope: MessageEnvelope) -> None:
        if "options" in envelope.payload:
            self.store.set_validation_options(_parse_options(envelope.get("options")))
        form = self.store.get_form_data()
        if not self.router.can_run_validation(form):
            logger.info("validation run refused: design system or options missing")
            self._notice("warning", "Attach a design system and pick at least one check first")
            return
        self._to_ui(topics.SHOW_LOADING, {"message": "Running validation..."})
        self._to_backend(
            topics.RUN_DESIGN_TOKENS_CHECK,
            {"options": sorted(form.validation_options), "libraryId": form.selected_design_system_id},
        )

    async def _handle_validation_results(self, envelope: MessageEnvelope) -> None:
        issues = parse_issues(envelope.get("issues"))
        try:
            total_nodes = int(envelope.get("totalNodes") or 0)
        except (TypeError, ValueError):
            total_nodes = 0
        results = ResultsData(
            issues=tuple(issues),
            total_nodes_scanned=total_nodes,
            scope=str(envelope.get("scope") or ""),
            generated_at=utc_now(),
            run_id=str(envelope.get("runId") or uuid.uuid4()),
        )
        self.store.set_results_data(results)
        logger.info("validation run %s: %d issues across %d nodes", results.run_id, len(issues), total_nodes)
        self._to_ui(topics.HIDE_LOADING)
        await self.transitions.go_to_results(results.to_dict())

    async def _handle_validation_error(self, envelope: MessageEnvelope) -> None:
        message = str(envelope.get("message") or "Validation failed")
        logger.error("validation failed: %s", message)
        self._to_ui(topics.HIDE_LOADING)
        self._notice("error", message)

    # Inspector
    async def _handle_select_node(self, envelope: MessageEnvelope) -> None:
        node_id = envelope.get("nodeId")
        if not node_id:
            logger.warning("select-node without a nodeId")
            return
        self._to_backend(topics.SELECT_AND_POSITION_NODE, {"nodeId": node_id})
        await self.transitions.go_to_collapsed()

    async def _handle_plugin_minimized(self, envelope: MessageEnvelope) -> None:
        await self.transitions.go_to_collapsed()

    async def _handle_selection_changed(self, envelope: MessageEnvelope) -> None:
        if self.store.get_current_view() != ViewId.COLLAPSED:
            return
        await self.router.on_asset_selected(envelope.get("nodeId"), envelope.get("nodeName"))

    # Navigation
    async def _handle_go_back(self, envelope: MessageEnvelope) -> None:
        await self.router.go_back()

    async def _handle_expand(self, envelope: MessageEnvelope) -> None:
        await self.router.expand()

    async def _handle_reset(self, envelope: MessageEnvelope) -> None:
        if self._on_reset is None:
            logger.warning("reset requested but no reset hook is installed")
            return
        await self._on_reset()
