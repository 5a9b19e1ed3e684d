from __future__ import annotations

import asyncio
import json
import logging
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, Optional, Protocol, Set, Tuple

from .errors import StorageError
from .types import (
    DEFAULT_VALIDATION_OPTIONS,
    AppState,
    DesignSystemInfo,
    FormData,
    ResultsData,
    normalize_options,
    utc_now,
)

logger = logging.getLogger(__name__)

KEY_DESIGN_SYSTEM = "selectedLibraryId"
KEY_DESIGN_SYSTEM_INFO = "designSystemInfo"
KEY_VALIDATION_OPTIONS = "validationOptions"
KEY_RESULTS_DATA = "resultsData"

DURABLE_KEYS = (KEY_DESIGN_SYSTEM, KEY_DESIGN_SYSTEM_INFO, KEY_VALIDATION_OPTIONS)
EPHEMERAL_KEYS = (KEY_RESULTS_DATA,)

FRESHNESS_WINDOW = timedelta(minutes=5)


class KeyValueStorage(Protocol):
    async def get(self, key: str) -> Any:
        ...

    async def set(self, key: str, value: Any) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...


class MemoryStorage:
    """Dict-backed storage tier, used for tests and headless runs."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self.data: Dict[str, Any] = dict(initial or {})

    async def get(self, key: str) -> Any:
        return self.data.get(key)

    async def set(self, key: str, value: Any) -> None:
        # round-trip through JSON so stored values never alias live objects
        self.data[key] = json.loads(json.dumps(value))

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStorage:
    """Storage tier kept in a single JSON file; the file is removed once it is empty.

    File access runs in a worker thread so transitions keep their timing.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._io_lock = threading.Lock()

    def _load_state(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except Exception as exc:
            logger.warning("storage file unreadable, treating as empty: %s (%s)", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _save_state(self, data: Dict[str, Any]) -> None:
        try:
            if not data:
                if self.path.exists():
                    self.path.unlink()
                return
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except (OSError, TypeError, ValueError) as exc:
            raise StorageError(f"failed to write {self.path}: {exc}") from exc

    def _get_sync(self, key: str) -> Any:
        with self._io_lock:
            return self._load_state().get(key)

    def _set_sync(self, key: str, value: Any) -> None:
        with self._io_lock:
            data = self._load_state()
            data[key] = value
            self._save_state(data)

    def _delete_sync(self, key: str) -> None:
        with self._io_lock:
            data = self._load_state()
            if key not in data:
                return
            data.pop(key, None)
            self._save_state(data)

    async def get(self, key: str) -> Any:
        return await asyncio.to_thread(self._get_sync, key)

    async def set(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._set_sync, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete_sync, key)


class PersistenceLayer:
    """Best-effort durability split into a durable and an ephemeral tier.

    Nothing here raises to the caller: failed writes are logged and failed
    reads come back as "absent".
    """

    def __init__(
        self,
        durable: KeyValueStorage,
        ephemeral: KeyValueStorage,
        *,
        clock: Callable[[], datetime] = utc_now,
        freshness_window: timedelta = FRESHNESS_WINDOW,
    ) -> None:
        self.durable = durable
        self.ephemeral = ephemeral
        self._clock = clock
        self.freshness_window = freshness_window

    # Design system
    async def save_design_system(self, system_id: str, info: DesignSystemInfo) -> None:
        try:
            await self.durable.set(KEY_DESIGN_SYSTEM, system_id)
            await self.durable.set(KEY_DESIGN_SYSTEM_INFO, info.to_dict())
        except Exception as exc:
            logger.warning("failed to save design system: %s", exc)

    async def load_design_system(self) -> Tuple[Optional[str], Optional[DesignSystemInfo]]:
        try:
            system_id = await self.durable.get(KEY_DESIGN_SYSTEM)
            raw_info = await self.durable.get(KEY_DESIGN_SYSTEM_INFO)
        except Exception as exc:
            logger.warning("failed to load design system: %s", exc)
            return None, None
        if not system_id or not isinstance(raw_info, dict):
            return None, None
        try:
            info = DesignSystemInfo.from_dict(raw_info)
        except Exception as exc:
            logger.warning("stored design system info is invalid: %s", exc)
            return None, None
        if info.id != system_id:
            logger.warning("stored design system id %s does not match its info (%s)", system_id, info.id)
            return None, None
        return str(system_id), info

    async def clear_design_system(self) -> None:
        try:
            await self.durable.delete(KEY_DESIGN_SYSTEM)
            await self.durable.delete(KEY_DESIGN_SYSTEM_INFO)
        except Exception as exc:
            logger.warning("failed to clear design system: %s", exc)

    # Validation options
    async def save_validation_options(self, options: FrozenSet[str]) -> None:
        try:
            await self.durable.set(KEY_VALIDATION_OPTIONS, sorted(options))
        except Exception as exc:
            logger.warning("failed to save validation options: %s", exc)

    async def load_validation_options(self) -> FrozenSet[str]:
        try:
            stored = await self.durable.get(KEY_VALIDATION_OPTIONS)
        except Exception as exc:
            logger.warning("failed to load validation options: %s", exc)
            return DEFAULT_VALIDATION_OPTIONS
        if not isinstance(stored, list):
            return DEFAULT_VALIDATION_OPTIONS
        return normalize_options(stored)

    # Form data
    async def save_form_data(self, form: FormData) -> None:
        if form.selected_design_system_id and form.attached_system_info:
            await self.save_design_system(form.selected_design_system_id, form.attached_system_info)
        else:
            await self.clear_design_system()
        await self.save_validation_options(form.validation_options)

    async def load_form_data(self) -> FormData:
        system_id, info = await self.load_design_system()
        options = await self.load_validation_options()
        return FormData(
            selected_design_system_id=system_id,
            attached_system_info=info,
            validation_options=options,
        )

    # Results
    async def save_results_data(self, results: ResultsData) -> None:
        try:
            await self.ephemeral.set(KEY_RESULTS_DATA, results.to_dict())
        except Exception as exc:
            logger.warning("failed to save results data: %s", exc)

    async def load_results_data(self) -> Optional[ResultsData]:
        try:
            raw = await self.ephemeral.get(KEY_RESULTS_DATA)
        except Exception as exc:
            logger.warning("failed to load results data: %s", exc)
            return None
        if not isinstance(raw, dict):
            return None
        try:
            return ResultsData.from_dict(raw)
        except Exception as exc:
            logger.warning("stored results data is invalid: %s", exc)
            return None

    async def clear_results_data(self) -> None:
        try:
            await self.ephemeral.delete(KEY_RESULTS_DATA)
        except Exception as exc:
            logger.warning("failed to clear results data: %s", exc)

    def are_results_fresh(self, results: ResultsData, now: Optional[datetime] = None) -> bool:
        current = now or self._clock()
        return (current - results.generated_at) < self.freshness_window

    async def load_fresh_results(self) -> Optional[ResultsData]:
        results = await self.load_results_data()
        if results is None:
            return None
        if self.are_results_fresh(results):
            return results
        logger.info("discarding stale results generated at %s", results.generated_at.isoformat())
        await self.clear_results_data()
        return None

    # Lifecycle
    async def migrate_old_data(self) -> None:
        # Only one storage layout has ever been written; later layouts hook in here.
        logger.debug("stored data layout is current, nothing to migrate")

    async def clear_all_data(self) -> None:
        await self.clear_design_system()
        try:
            await self.durable.delete(KEY_VALIDATION_OPTIONS)
        except Exception as exc:
            logger.warning("failed to clear validation options: %s", exc)
        await self.clear_results_data()


_UNSET: Any = object()


class PersistenceSubscriber:
    """StateStore listener that mirrors form and results changes into storage.

    Writes are scheduled as tasks on the running loop and executed one at a
    time in the order the mutations happened; callers never wait for them.
    """

    def __init__(self, persistence: PersistenceLayer) -> None:
        self.persistence = persistence
        self._last_form: Any = _UNSET
        self._last_results: Any = _UNSET
        self._pending: Set["asyncio.Task[None]"] = set()
        self._lock: Optional[asyncio.Lock] = None
        self._deferred_form: Any = _UNSET
        self._deferred_results: Any = _UNSET

    def prime(self, form: FormData, results: Optional[ResultsData]) -> None:
        """Record values known to be in storage already so they are not written back."""
        self._last_form = form
        self._last_results = results

    def mark_synced(self, state: AppState) -> None:
        self.prime(state.form_data, state.results_data)

    def __call__(self, state: AppState) -> None:
        form: Any = _UNSET
        results: Any = _UNSET
        if state.form_data != self._last_form:
            form = state.form_data
            self._last_form = state.form_data
        if state.results_data is not self._last_results:
            results = state.results_data
            self._last_results = state.results_data
        if form is _UNSET and results is _UNSET:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if form is not _UNSET:
                self._deferred_form = form
            if results is not _UNSET:
                self._deferred_results = results
            logger.debug("no running loop, deferring persistence until flush")
            return
        self._schedule(loop, form, results)

    def _schedule(self, loop: asyncio.AbstractEventLoop, form: Any, results: Any) -> None:
        task = loop.create_task(self._write(form, results))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write(self, form: Any, results: Any) -> None:
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            try:
                if form is not _UNSET:
                    await self.persistence.save_form_data(form)
                if results is not _UNSET:
                    if results is None:
                        await self.persistence.clear_results_data()
                    else:
                        await self.persistence.save_results_data(results)
            except Exception as exc:
                logger.error("background persistence failed: %s", exc)

    async def flush(self) -> None:
        if self._deferred_form is not _UNSET or self._deferred_results is not _UNSET:
            form, results = self._deferred_form, self._deferred_results
            self._deferred_form = _UNSET
            self._deferred_results = _UNSET
            self._schedule(asyncio.get_running_loop(), form, results)
        while True:
            pending = [task for task in self._pending if not task.done()]
            if not pending:
                break
            await asyncio.gather(*pending)

    @property
    def pending_writes(self) -> int:
        return len(self._pending)
