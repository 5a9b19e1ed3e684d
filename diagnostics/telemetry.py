from __future__ import annotations

import json
import logging
import time
from collections import deque
from pathlib import Path
from typing import Any, Deque, Dict, List, Optional

from app_ui import config as app_config

logger = logging.getLogger(__name__)

_METRIC_LIMIT = 256
_METRICS: Deque[Dict[str, Any]] = deque(maxlen=_METRIC_LIMIT)
_ENABLED: Optional[bool] = None


def set_telemetry_enabled(enabled: Optional[bool]) -> None:
    """Set telemetry on or off for this process; ``None`` re-reads the app config on next use."""
    global _ENABLED
    _ENABLED = enabled


def is_telemetry_enabled() -> bool:
    global _ENABLED
    if _ENABLED is None:
        _ENABLED = app_config.get_telemetry_enabled()
    return _ENABLED


def emit_metric(
    name: str,
    value: float | int = 1,
    *,
    base_dir: Optional[Path] = None,
    **attrs: Any,
) -> bool:
    if not is_telemetry_enabled():
        return False
    record = {
        "name": name,
        "value": value,
        "attrs": dict(attrs),
        "ts": time.time(),
    }
    _METRICS.append(record)
    metrics_dir = (base_dir or Path("data/roaming")) / "telemetry"
    try:
        metrics_dir.mkdir(parents=True, exist_ok=True)
        with (metrics_dir / "metrics.jsonl").open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record) + "\n")
    except Exception as exc:
        logger.debug("telemetry write failed: %s", exc)
    return True


def get_recent_metrics(name: Optional[str] = None) -> List[Dict[str, Any]]:
    if name is None:
        return list(_METRICS)
    return [item for item in _METRICS if item["name"] == name]


def clear_metrics() -> None:
    _METRICS.clear()
