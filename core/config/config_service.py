"""Typed, layered configuration with precedence handling.

Layers, lowest precedence first:

0. embedded defaults (``_DEFAULTS``)
1. ``core/config/defaults.ini``
2. environment, ``APPROVALFLOW_<SECTION>__<KEY>``
3. machine ``core/config/config.ini``
4. user ``config.ini`` (per-user config directory)

Every merged value remembers the layer it came from (:meth:`ConfigService.meta_source`).
"""
from __future__ import annotations

import configparser
import os
from dataclasses import dataclass, fields
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, Tuple

Layer = Dict[str, Dict[str, str]]


def _find_project_root() -> Path:
    here = Path(__file__).resolve()
    for parent in here.parents:
        if (parent / "core").is_dir():
            return parent
    return here.parent


PROJECT_ROOT = _find_project_root()
CONFIG_DIR = PROJECT_ROOT / "core" / "config"
DEFAULTS_INI = CONFIG_DIR / "defaults.ini"
MACHINE_INI = CONFIG_DIR / "config.ini"

ENV_PREFIX = "APPROVALFLOW_"


# --------------------------------------------------------------------------- #
#  Sections
# --------------------------------------------------------------------------- #

@dataclass
class DatabaseConfig:
    approvals: Path = PROJECT_ROOT / "databases" / "approvals.db"
    logging: Path = PROJECT_ROOT / "databases" / "logs.db"


@dataclass
class StorageConfig:
    artifact_root: Path = PROJECT_ROOT / "uploads"


@dataclass
class SignatureSection:
    capture_width: int = 560
    capture_height: int = 200
    crop_padding: int = 8
    stroke_min_width: float = 1.0
    stroke_max_width: float = 3.5
    smoothing_alpha: float = 0.7
    velocity_filter_weight: float = 0.7
    default_box_width_px: float = 170.0
    default_box_height_px: float = 70.0
    default_margin_pct: float = 0.1
    min_box_width_px: float = 40.0
    resize_handle_px: float = 10.0
    delete_button_px: float = 16.0


@dataclass
class WorkflowSection:
    date_format: str = "%b %d, %y %I:%M %p"
    # 0 disables the timeout sweep
    timeout_days: int = 0


# ini section name -> (attribute on ConfigService, dataclass)
_SECTIONS: Dict[str, Tuple[str, type]] = {
    "Database": ("database", DatabaseConfig),
    "Storage": ("storage", StorageConfig),
    "Signature": ("signature", SignatureSection),
    "Workflow": ("workflow", WorkflowSection),
}


def _defaults_layer() -> Layer:
    layer: Layer = {}
    for section, (_, cls) in _SECTIONS.items():
        layer[section] = {
            f.name: (Path(f.default).as_posix() if isinstance(f.default, Path) else str(f.default))
            for f in fields(cls)
        }
    return layer


_DEFAULTS: Layer = _defaults_layer()


# --------------------------------------------------------------------------- #
#  Layer readers
# --------------------------------------------------------------------------- #

def _read_ini(path: Path) -> Layer:
    if not path.exists():
        return {}
    # interpolation off: date formats contain '%'
    cp = configparser.ConfigParser(interpolation=None)
    cp.read(path, encoding="utf-8")
    return {section: dict(cp.items(section, raw=True)) for section in cp.sections()}


def _read_env() -> Layer:
    layer: Layer = {}
    for name, value in os.environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        section, sep, key = name[len(ENV_PREFIX):].partition("__")
        if sep and section and key:
            layer.setdefault(section.title(), {})[key.lower()] = value
    return layer


def _user_config_path() -> Path:
    if os.name == "nt":
        appdata = os.environ.get("APPDATA") or (Path.home() / "AppData" / "Roaming")
        return Path(appdata) / "ApprovalFlow" / "config.ini"
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")) / "approvalflow" / "config.ini"


# --------------------------------------------------------------------------- #
#  Casting
# --------------------------------------------------------------------------- #

_TRUE = {"1", "true", "yes", "on"}
_CASTS: Dict[str, Callable[[Any], Any]] = {
    "Path": lambda v: Path(str(v)).expanduser(),
    "bool": lambda v: v if isinstance(v, bool) else str(v).strip().lower() in _TRUE,
    "int": lambda v: int(str(v).strip()),
    "float": lambda v: float(str(v).strip()),
    "str": str,
}


def _cast(value: Any, typ: type | str) -> Any:
    if isinstance(typ, str):
        return _CASTS.get(typ, str)(value)
    return _CASTS.get(typ.__name__, typ)(value)


def _bind(cls: type, values: Dict[str, str]) -> Any:
    # field.type is a string under postponed annotations
    return cls(**{f.name: _cast(values.get(f.name, f.default), f.type) for f in fields(cls)})


# --------------------------------------------------------------------------- #
#  ConfigService
# --------------------------------------------------------------------------- #

class ConfigService:
    """Facade merging layered configuration with type safety."""

    database: DatabaseConfig
    storage: StorageConfig
    signature: SignatureSection
    workflow: WorkflowSection

    def __init__(self, *, user_ini: Path | None = None) -> None:
        self._lock = RLock()
        self._user_ini = user_ini
        self._merged: Layer = {}
        self._sources: Dict[Tuple[str, str], Dict[str, str]] = {}
        self.reload()

    def _layers(self) -> List[Tuple[str, str, Layer]]:
        user_ini = self._user_ini or _user_config_path()
        return [
            ("code", "embedded", _DEFAULTS),
            ("defaults.ini", str(DEFAULTS_INI), _read_ini(DEFAULTS_INI)),
            ("env", "os.environ", _read_env()),
            ("machine", str(MACHINE_INI), _read_ini(MACHINE_INI)),
            ("user", str(user_ini), _read_ini(user_ini)),
        ]

    def reload(self) -> None:
        with self._lock:
            merged: Layer = {}
            sources: Dict[Tuple[str, str], Dict[str, str]] = {}
            for layer, origin, values in self._layers():
                for section, items in values.items():
                    target = merged.setdefault(section, {})
                    for key, value in items.items():
                        target[key] = value
                        sources[(section, key)] = {"layer": layer, "source": origin}

            bound = {attr: _bind(cls, merged.get(section, {})) for section, (attr, cls) in _SECTIONS.items()}
            self._merged, self._sources = merged, sources
            for attr, value in bound.items():
                setattr(self, attr, value)

    def get(self, section: str, key: str, *, cast: Callable[[Any], Any] | type = str) -> Any:
        """Raw merged value, cast on the way out; None when unset."""
        val = self._merged.get(section, {}).get(key)
        if val is None:
            return None
        return _cast(val, cast) if isinstance(cast, type) else cast(val)

    def meta_source(self, section: str, key: str) -> Optional[Dict[str, str]]:
        return self._sources.get((section, key))


_instance: ConfigService | None = None
_instance_lock = RLock()


def get_config_service() -> ConfigService:
    """Lazily created process-wide instance."""
    global _instance
    with _instance_lock:
        if _instance is None:
            _instance = ConfigService()
        return _instance
