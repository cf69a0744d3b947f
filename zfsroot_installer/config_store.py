from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping

import yaml

from .config import InstallConfig
from .errors import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "ZFSROOT_"

# key -> kind; the closed set of recognised overrides.
OVERRIDE_KEYS = {
    "distro": "str",
    "release": "str",
    "encryption": "bool",
    "hwe_kernel": "bool",
    "minimal_install": "bool",
    "passwordless_sudo": "bool",
    "install_refind": "bool",
    "rtl8821ce": "bool",
    "hostname": "str",
    "username": "str",
    "locale": "str",
    "timezone": "str",
    "mirror_url": "str",
    "root_dataset": "str",
    "pool_name": "str",
    "mountpoint": "str",
    "debug": "bool",
    "udev_timeout": "int",
    "pool_create_timeout": "int",
    "swap_size_gb": "int",
}


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"json", "yaml", "yml"}:
        return ext
    # Default to YAML for unknown extensions; it is a superset of JSON.
    return "yaml"


def parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if s == "true":
        return True
    if s == "false":
        return False
    raise ConfigError(f"{key} must be 'true' or 'false', got {value!r}")


def coerce(key: str, value: Any) -> Any:
    kind = OVERRIDE_KEYS.get(key)
    if kind is None:
        raise ConfigError(f"Unknown configuration key: {key}")
    if kind == "bool":
        return parse_bool(key, value)
    if kind == "int":
        try:
            n = int(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{key} must be an integer, got {value!r}") from e
        if n <= 0:
            raise ConfigError(f"{key} must be positive, got {n}")
        return n
    return str(value).strip()


def load_overrides(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config file not found: {path}")

    text = p.read_text(encoding="utf-8")
    if _detect_format(p) == "json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text) or {}

    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be an object/dict, got {type(data).__name__}")
    return data


def overrides_from_env(environ: Mapping[str, str]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for name, value in environ.items():
        if name.startswith(ENV_PREFIX):
            out[name[len(ENV_PREFIX):].lower()] = value
    return out


def overrides_from_pairs(pairs: Iterable[str]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise ConfigError(f"Expected KEY=VALUE, got {pair!r}")
        out[key.strip().lower()] = value
    return out


def apply_overrides(config: InstallConfig, overrides: Mapping[str, Any], *, source: str) -> InstallConfig:
    for key, raw in overrides.items():
        value = coerce(key, raw)
        setattr(config, key, value)
        logger.info("Override from %s: %s=%r", source, key, value)
    return config


def build_config(
    *,
    config_path: str | None = None,
    environ: Mapping[str, str] | None = None,
    pairs: Iterable[str] = (),
) -> InstallConfig:
    """Defaults, then file, then environment, then --set pairs."""

    config = InstallConfig()
    if config_path:
        apply_overrides(config, load_overrides(config_path), source=config_path)
    if environ:
        apply_overrides(config, overrides_from_env(environ), source="environment")
    apply_overrides(config, overrides_from_pairs(pairs), source="command line")
    config.validate()
    return config
