from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from diagnostics import telemetry
from message_bridge import MessageBridge

from .message_handler import MessageHandler
from .persistence import JsonFileStorage, KeyValueStorage, MemoryStorage, PersistenceLayer, PersistenceSubscriber
from .router import NavigationRouter
from .store import StateStore
from .surface import PresentationSurface
from .transitions import Sleep, TransitionController
from .types import AppState, DesignSystemInfo, ResultsData, ValidationIssue, ViewId, utc_now

logger = logging.getLogger(__name__)


class ViewStateContext:
    """Everything the view-state subsystem needs, constructed explicitly and passed around.

    Independent contexts share nothing, so several can live side by side.
    """

    def __init__(
        self,
        surface: PresentationSurface,
        *,
        bridge: Optional[MessageBridge] = None,
        durable: Optional[KeyValueStorage] = None,
        ephemeral: Optional[KeyValueStorage] = None,
        sleep: Sleep = asyncio.sleep,
        reduced_motion: bool = False,
    ) -> None:
        self.bridge = bridge or MessageBridge()
        self.store = StateStore()
        self.persistence = PersistenceLayer(durable or MemoryStorage(), ephemeral or MemoryStorage())
        self.persister = PersistenceSubscriber(self.persistence)
        self.transitions = TransitionController(
            self.store,
            self.bridge,
            surface,
            sleep=sleep,
            reduced_motion=reduced_motion,
        )
        self.router = NavigationRouter(self.store, self.transitions)
        self.handler = MessageHandler(
            self.bridge,
            self.store,
            self.router,
            self.transitions,
            on_reset=self.reset,
        )
        self._unsubscribe_persister = self.store.subscribe(self.persister)
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        if self._initialized:
            logger.warning("view state context already initialized")
            return
        await self.persistence.migrate_old_data()
        form = await self.persistence.load_form_data()
        results = await self.persistence.load_fresh_results()
        self.persister.prime(form, results)
        self.store.update_form_data(
            selected_design_system_id=form.selected_design_system_id,
            attached_system_info=form.attached_system_info,
            validation_options=form.validation_options,
        )
        if results is not None:
            self.store.set_results_data(results)
        self.transitions.present_current_view()
        self._initialized = True
        logger.info(
            "view state initialized (design system: %s, cached results: %s)",
            form.selected_design_system_id or "none",
            "yes" if results is not None else "no",
        )

    # Queries
    def get_state(self) -> AppState:
        return self.store.get_state()

    def get_current_view(self) -> ViewId:
        return self.store.get_current_view()

    def can_run_validation(self) -> bool:
        return self.router.can_run_validation()

    def subscribe(self, listener: Callable[[AppState], None]) -> Callable[[], None]:
        return self.store.subscribe(listener)

    # Form
    def attach_design_system(self, info: DesignSystemInfo) -> None:
        self.store.attach_design_system(info)

    def detach_design_system(self) -> None:
        self.store.detach_design_system()

    def set_validation_options(self, options: Iterable[str]) -> None:
        self.store.set_validation_options(options)

    def toggle_validation_option(self, option: str) -> None:
        self.store.toggle_validation_option(option)

    # Results
    def set_validation_results(
        self,
        issues: List[ValidationIssue],
        total_nodes: int,
        scope: str,
        run_id: Optional[str] = None,
    ) -> ResultsData:
        results = ResultsData(
            issues=tuple(issues),
            total_nodes_scanned=total_nodes,
            scope=scope,
            generated_at=utc_now(),
            run_id=run_id or str(uuid.uuid4()),
        )
        self.store.set_results_data(results)
        return results

    def clear_results(self) -> None:
        self.store.clear_results_data()

    # Lifecycle
    async def reset(self) -> None:
        self.store.reset()
        await self.persister.flush()
        await self.persistence.clear_all_data()
        self.persister.mark_synced(self.store.get_state())
        self.transitions.present_current_view()
        logger.info("view state reset to first-run defaults")

    async def shutdown(self) -> None:
        await self.handler.drain()
        await self.persister.flush()
        self.handler.close()
        self.router.close()
        self._unsubscribe_persister()


def build_default_context(
    surface: PresentationSurface,
    *,
    bridge: Optional[MessageBridge] = None,
    config_path: Optional[Path] = None,
) -> ViewStateContext:
    from app_ui import config as app_config

    # Resolved once here; selection events never touch the config file.
    telemetry.set_telemetry_enabled(app_config.get_telemetry_enabled(config_path))
    durable_path, session_path = app_config.get_storage_paths(config_path)
    return ViewStateContext(
        surface,
        bridge=bridge,
        durable=JsonFileStorage(durable_path),
        ephemeral=JsonFileStorage(session_path),
        reduced_motion=app_config.get_reduced_motion(config_path),
    )
