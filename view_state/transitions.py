# =============================================================================
# NAV INDEX (search these tags)
# [NAV-00] Imports / constants
# [NAV-10] Transition style table
# [NAV-20] Controller: public API
# [NAV-30] Controller: transition steps
# [NAV-40] Controller: surface geometry
# [NAV-99] End
# =============================================================================

# === [NAV-00] Imports / constants ============================================
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from diagnostics.tracing import span
from message_bridge import MessageBridge, topics

from .errors import TransitionError
from .store import StateStore
from .surface import VIEW_SIZES, PresentationSurface, Size, centered_position, top_center_position
from .types import Animation, HistoryEntry, Transition, TransitionOptions, ViewId

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]

COLLAPSE_DURATION_MS = 200
STANDARD_DURATION_MS = 300
RESIZE_STEP_MS = 20
MIN_RESIZE_STEPS = 10

_VIEW_LABELS = {
    ViewId.FORM: "form",
    ViewId.RESULTS: "results",
    ViewId.COLLAPSED: "collapsed",
    ViewId.ISSUE_DETAILS: "issue details",
    ViewId.OUT_OF_SCOPE_MODAL: "out of scope",
}


# === [NAV-10] Transition style table =========================================
def resolve_style(from_view: ViewId, to_view: ViewId) -> Tuple[Animation, int]:
    if ViewId.COLLAPSED in (from_view, to_view):
        return Animation.RESIZE, COLLAPSE_DURATION_MS
    if {from_view, to_view} == {ViewId.FORM, ViewId.RESULTS}:
        return Animation.SLIDE, STANDARD_DURATION_MS
    return Animation.FADE, STANDARD_DURATION_MS


def resize_steps(duration_ms: int) -> int:
    return max(MIN_RESIZE_STEPS, duration_ms // RESIZE_STEP_MS)


# === [NAV-20] Controller: public API =========================================
class TransitionController:
    """Runs one view switch at a time: messaging, surface geometry, timing, commit.

    A request arriving while a transition runs is dropped, not queued.
    """

    def __init__(
        self,
        store: StateStore,
        bridge: MessageBridge,
        surface: PresentationSurface,
        *,
        sleep: Sleep = asyncio.sleep,
        reduced_motion: bool = False,
        view_sizes: Optional[Dict[ViewId, Size]] = None,
    ) -> None:
        self.store = store
        self.bridge = bridge
        self.surface = surface
        self.reduced_motion = reduced_motion
        self.view_sizes = dict(view_sizes or VIEW_SIZES)
        self._sleep = sleep
        self._transitioning = False
        self._callbacks: Dict[str, Callable[[], None]] = {}

    @property
    def in_progress(self) -> bool:
        return self._transitioning

    def plan(self, from_view: ViewId, to_view: ViewId, options: TransitionOptions) -> Transition:
        animation, duration = resolve_style(from_view, to_view)
        if options.animation is not None:
            animation = Animation(options.animation)
        if options.duration_ms is not None:
            duration = max(0, int(options.duration_ms))
        if self.reduced_motion:
            duration = 0
        return Transition(
            from_view=from_view,
            to_view=to_view,
            animation=animation,
            duration_ms=duration,
            preserve_data=options.preserve_data,
        )

    async def switch_to_view(self, target: ViewId, options: Optional[TransitionOptions] = None) -> bool:
        """Switch to ``target``; returns True only when a transition ran to completion."""
        target = ViewId(target)
        options = options or TransitionOptions()
        current = self.store.get_current_view()
        if target == current:
            logger.debug("already in %s view, no transition needed", target.value)
            return False
        if self._transitioning:
            logger.warning("transition to %s rejected: another transition is in progress", target.value)
            return False

        transition = self.plan(current, target, options)
        self._transitioning = True
        pushed: Optional[HistoryEntry] = None
        try:
            with span(
                "view.transition",
                from_view=current.value,
                to_view=target.value,
                animation=transition.animation.value,
                duration_ms=transition.duration_ms,
            ):
                if transition.preserve_data:
                    pushed = HistoryEntry(view=current, params=self.store.get_state().view_params)
                    self.store.push_history(pushed)
                await self._execute(transition, options.data)
                self.store.set_current_view(target, preserve_previous=True, params=options.data)
        except Exception as exc:
            logger.error("transition %s -> %s failed: %s", current.value, target.value, exc)
            if pushed is not None and self.store.history and self.store.history[-1] is pushed:
                self.store.pop_history()
            self._post_quietly(topics.HIDE_LOADING, {})
            if isinstance(exc, TransitionError):
                raise
            raise TransitionError(str(exc), current, target) from exc
        finally:
            self._transitioning = False

        logger.info("transitioned %s -> %s (%s, %sms)", current.value, target.value,
                    transition.animation.value, transition.duration_ms)
        self._run_callbacks()
        return True

    async def go_to_form(self, data: Optional[Dict[str, Any]] = None) -> bool:
        return await self.switch_to_view(ViewId.FORM, TransitionOptions(data=data))

    async def go_to_results(self, data: Optional[Dict[str, Any]] = None) -> bool:
        return await self.switch_to_view(ViewId.RESULTS, TransitionOptions(animation=Animation.SLIDE, data=data))

    async def go_to_collapsed(self, data: Optional[Dict[str, Any]] = None) -> bool:
        return await self.switch_to_view(
            ViewId.COLLAPSED,
            TransitionOptions(animation=Animation.RESIZE, duration_ms=COLLAPSE_DURATION_MS, data=data),
        )

    def present_current_view(self) -> None:
        """Size and announce the current view without running a transition."""
        state = self.store.get_state()
        target = self.view_sizes[state.current_view]
        if self.surface.size() != target:
            self.surface.resize(target.width, target.height)
        if state.current_view == ViewId.COLLAPSED:
            self.surface.reposition(*top_center_position(self.surface.viewport(), target))
        else:
            self.surface.reposition(*centered_position(self.surface.viewport(), target))
        self._post_view_change(state.current_view, state.view_params)

    def on_transition_complete(self, callback_id: str, callback: Callable[[], None]) -> None:
        self._callbacks[callback_id] = callback

    def remove_transition_callback(self, callback_id: str) -> None:
        self._callbacks.pop(callback_id, None)

    # === [NAV-30] Controller: transition steps ===============================
    async def _execute(self, transition: Transition, data: Optional[Dict[str, Any]]) -> None:
        self._post(
            topics.TRANSITION_START,
            {
                "from": transition.from_view.value,
                "to": transition.to_view.value,
                "animation": transition.animation.value,
                "duration": transition.duration_ms,
            },
        )
        self._post(
            topics.SHOW_LOADING,
            {
                "message": f"Switching to {_VIEW_LABELS[transition.to_view]} view...",
                "animation": transition.animation.value,
            },
        )
        elapsed_ms = await self._apply_geometry(transition)
        self._post_view_change(transition.to_view, data)
        remaining_ms = transition.duration_ms - elapsed_ms
        if remaining_ms > 0:
            await self._sleep(remaining_ms / 1000.0)
        self._post(topics.HIDE_LOADING, {})
        self._post(
            topics.TRANSITION_COMPLETE,
            {"from": transition.from_view.value, "to": transition.to_view.value},
        )

    def _post_view_change(self, view: ViewId, data: Optional[Dict[str, Any]]) -> None:
        payload: Dict[str, Any] = {"view": view.value, "collapsed": view == ViewId.COLLAPSED}
        if data:
            payload["data"] = data
        self._post(topics.VIEW_CHANGE, payload)

    def _post(self, msg_type: str, payload: Dict[str, Any]) -> None:
        self.bridge.post(topics.CHANNEL_UI, msg_type, payload, source="transitions")

    def _post_quietly(self, msg_type: str, payload: Dict[str, Any]) -> None:
        try:
            self._post(msg_type, payload)
        except Exception as exc:
            logger.error("could not post %s after failed transition: %s", msg_type, exc)

    def _run_callbacks(self) -> None:
        for callback_id, callback in list(self._callbacks.items()):
            try:
                callback()
            except Exception as exc:
                logger.error("transition callback %s failed: %s", callback_id, exc)

    # === [NAV-40] Controller: surface geometry ===============================
    async def _apply_geometry(self, transition: Transition) -> float:
        """Resize and reposition the surface; returns the milliseconds spent waiting."""
        start = self.surface.size()
        target = self.view_sizes[transition.to_view]
        elapsed_ms = 0.0
        if start != target:
            if transition.animation == Animation.RESIZE and transition.duration_ms > 0:
                elapsed_ms = await self._animate_resize(start, target, transition.duration_ms)
            else:
                self.surface.resize(target.width, target.height)
        if transition.to_view == ViewId.COLLAPSED:
            self.surface.reposition(*top_center_position(self.surface.viewport(), target))
        elif transition.from_view == ViewId.COLLAPSED:
            self.surface.reposition(*centered_position(self.surface.viewport(), target))
        return elapsed_ms

    async def _animate_resize(self, start: Size, target: Size, duration_ms: int) -> float:
        steps = resize_steps(duration_ms)
        step_ms = duration_ms / steps
        width_step = (target.width - start.width) / steps
        height_step = (target.height - start.height) / steps
        elapsed_ms = 0.0
        for index in range(1, steps + 1):
            self.surface.resize(
                round(start.width + width_step * index),
                round(start.height + height_step * index),
            )
            if index < steps:
                await self._sleep(step_ms / 1000.0)
                elapsed_ms += step_ms
        return elapsed_ms


# === [NAV-99] End =============================================================
__all__ = [
    "TransitionController",
    "resolve_style",
    "resize_steps",
    "COLLAPSE_DURATION_MS",
    "STANDARD_DURATION_MS",
]
