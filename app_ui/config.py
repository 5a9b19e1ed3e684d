# =============================================================================
# NAV INDEX (search these tags)
# [NAV-00] Imports / constants
# [NAV-10] Config loading (defaults/roaming)
# [NAV-20] Public getters
# [NAV-99] End
# =============================================================================

# === [NAV-00] Imports / constants ============================================
from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional, Tuple

CONFIG_PATH = Path("data/roaming/tokenaudit_config.json")
_DEFAULT_APP_CONFIG = {
    "reduced_motion": False,
    "telemetry_enabled": False,
    "durable_store_path": "data/roaming/client_storage.json",
    "session_store_path": "data/roaming/session_cache.json",
}


# === [NAV-10] Config loading (defaults/roaming) ==============================
def load_app_config(path: Optional[Path] = None) -> Dict:
    path = path or CONFIG_PATH
    if not path.exists():
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(_DEFAULT_APP_CONFIG, indent=2), encoding="utf-8")
        except OSError:
            pass
        return _DEFAULT_APP_CONFIG.copy()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        return _DEFAULT_APP_CONFIG.copy()
    if not isinstance(data, dict):
        return _DEFAULT_APP_CONFIG.copy()
    for key, value in _DEFAULT_APP_CONFIG.items():
        data.setdefault(key, value)
    return data


def save_app_config(data: Dict, path: Optional[Path] = None) -> None:
    path = path or CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


# === [NAV-20] Public getters ==================================================
def get_reduced_motion(path: Optional[Path] = None) -> bool:
    config = load_app_config(path)
    return bool(config.get("reduced_motion", False))


def get_telemetry_enabled(path: Optional[Path] = None) -> bool:
    config = load_app_config(path)
    return bool(config.get("telemetry_enabled", False))


def get_storage_paths(path: Optional[Path] = None) -> Tuple[Path, Path]:
    config = load_app_config(path)
    durable = config.get("durable_store_path") or _DEFAULT_APP_CONFIG["durable_store_path"]
    session = config.get("session_store_path") or _DEFAULT_APP_CONFIG["session_store_path"]
    return Path(str(durable)), Path(str(session))


# === [NAV-99] End =============================================================
__all__ = [
    "CONFIG_PATH",
    "load_app_config",
    "save_app_config",
    "get_reduced_motion",
    "get_telemetry_enabled",
    "get_storage_paths",
]
