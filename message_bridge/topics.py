"""Channel names and message types carried by the message bridge."""

# Channels
CHANNEL_UI = "ui"
CHANNEL_BACKEND = "backend"
CHANNEL_CORE = "core"

# Core -> presentation layer
TRANSITION_START = "transition-start"
VIEW_CHANGE = "view-change"
TRANSITION_COMPLETE = "transition-complete"
SHOW_LOADING = "show-loading"
HIDE_LOADING = "hide-loading"
NOTICE = "notice"
LIBRARIES_LIST = "libraries-list"
DESIGN_SYSTEM_ATTACHED = "design-system-attached"
DESIGN_SYSTEM_DETACHED = "design-system-detached"

# Presentation layer -> core
GET_LIBRARIES = "get-libraries"
ATTACH_DESIGN_SYSTEM = "attach-design-system"
DETACH_DESIGN_SYSTEM = "detach-design-system"
RUN_VALIDATION = "run-validation"
SELECT_NODE = "select-node"
GO_BACK = "go-back"
EXPAND_VIEW = "expand-view"
RESET_STATE = "reset-state"

# Core -> backend
GET_SAVED_LIBRARIES = "get-saved-libraries"
SELECT_LIBRARY = "select-library"
RUN_DESIGN_TOKENS_CHECK = "run-design-tokens-check"
SELECT_AND_POSITION_NODE = "select-and-position-node"
ENABLE_SELECTION_TRACKING = "enable-selection-tracking"
DISABLE_SELECTION_TRACKING = "disable-selection-tracking"

# Backend -> core
LIBRARIES_LOADED = "libraries-list"
LIBRARIES_ERROR = "libraries-error"
VALIDATION_RESULTS = "validation-results"
VALIDATION_ERROR = "validation-error"
SELECTION_CHANGED = "selection-changed"
PLUGIN_MINIMIZED = "plugin-minimized"

__all__ = [
    "CHANNEL_UI",
    "CHANNEL_BACKEND",
    "CHANNEL_CORE",
    "TRANSITION_START",
    "VIEW_CHANGE",
    "TRANSITION_COMPLETE",
    "SHOW_LOADING",
    "HIDE_LOADING",
    "NOTICE",
    "LIBRARIES_LIST",
    "DESIGN_SYSTEM_ATTACHED",
    "DESIGN_SYSTEM_DETACHED",
    "GET_LIBRARIES",
    "ATTACH_DESIGN_SYSTEM",
    "DETACH_DESIGN_SYSTEM",
    "RUN_VALIDATION",
    "SELECT_NODE",
    "GO_BACK",
    "EXPAND_VIEW",
    "RESET_STATE",
    "GET_SAVED_LIBRARIES",
    "SELECT_LIBRARY",
    "RUN_DESIGN_TOKENS_CHECK",
    "SELECT_AND_POSITION_NODE",
    "ENABLE_SELECTION_TRACKING",
    "DISABLE_SELECTION_TRACKING",
    "LIBRARIES_LOADED",
    "LIBRARIES_ERROR",
    "VALIDATION_RESULTS",
    "VALIDATION_ERROR",
    "SELECTION_CHANGED",
    "PLUGIN_MINIMIZED",
]
