from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

LOGGER_NAMES = ("view_state", "message_bridge", "app_ui", "diagnostics")
_LOG_FORMAT = "ts=%(asctime)s level=%(levelname)s logger=%(name)s msg=%(message)s"

_CONFIGURED = False
_HANDLER: Optional[logging.Handler] = None


def configure_logging(base_dir: Optional[Path] = None, level: int = logging.INFO) -> Dict[str, str]:
    global _CONFIGURED, _HANDLER
    root = base_dir or Path("data/roaming")
    log_dir = root / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "tokenaudit.log"

    if base_dir is None and _CONFIGURED:
        return _describe(log_path)

    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    for name in LOGGER_NAMES:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        if _HANDLER is not None and base_dir is None:
            logger.removeHandler(_HANDLER)
        logger.addHandler(handler)

    if base_dir is None:
        _HANDLER = handler
        _CONFIGURED = True
    return _describe(log_path)


def reset_logging(handler: Optional[logging.Handler] = None) -> None:
    """Detach ``handler`` (default: the process-wide one) from the package loggers."""
    global _CONFIGURED, _HANDLER
    target = handler or _HANDLER
    if target is None:
        return
    for name in LOGGER_NAMES:
        logging.getLogger(name).removeHandler(target)
    target.close()
    if target is _HANDLER:
        _HANDLER = None
        _CONFIGURED = False


def _describe(log_path: Path) -> Dict[str, str]:
    return {
        "log_path": str(log_path),
        "format": "kv",
        "handlers": "file",
        "logger_names": ",".join(LOGGER_NAMES),
    }
