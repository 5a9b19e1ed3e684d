"""View-state and navigation core of the token audit plugin."""

from .context import ViewStateContext, build_default_context
from .errors import StorageError, TransitionError, ViewStateError
from .persistence import JsonFileStorage, MemoryStorage, PersistenceLayer
from .router import IntentKind, NavigationIntent, NavigationRouter
from .store import StateStore
from .surface import HeadlessSurface, PresentationSurface, Size, Viewport
from .transitions import TransitionController
from .types import (
    Animation,
    AppState,
    DesignSystemInfo,
    FormData,
    ResultsData,
    TransitionOptions,
    ValidationIssue,
    ViewId,
)

__all__ = [
    "Animation",
    "AppState",
    "DesignSystemInfo",
    "FormData",
    "HeadlessSurface",
    "IntentKind",
    "JsonFileStorage",
    "MemoryStorage",
    "NavigationIntent",
    "NavigationRouter",
    "PersistenceLayer",
    "PresentationSurface",
    "ResultsData",
    "Size",
    "StateStore",
    "StorageError",
    "TransitionController",
    "TransitionError",
    "TransitionOptions",
    "ValidationIssue",
    "ViewId",
    "ViewStateContext",
    "ViewStateError",
    "Viewport",
    "build_default_context",
]
