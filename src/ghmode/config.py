from __future__ import annotations

from datetime import date, datetime, time
from pathlib import Path
from typing import TypeAlias
import tomllib

from ghmode.governance_paths import GOVERNANCE_PATHS, GovernancePathConfig

DEFAULT_CONFIG_NAME = "ghmode.toml"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def _section(data: TomlTable, name: str) -> TomlTable:
    section = data.get(name, {})
    return section if isinstance(section, dict) else {}


def paths_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    return _section(load_config(root=root, config_path=config_path), "paths")


def bundle_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    return _section(load_config(root=root, config_path=config_path), "bundle")


def governance_paths_for(
    root: Path | None = None, config_path: Path | None = None
) -> GovernancePathConfig:
    return GOVERNANCE_PATHS.with_overrides(paths_defaults(root=root, config_path=config_path))


def bundle_name_prefix(section: TomlTable | None, default: str) -> str:
    if not section:
        return default
    value = section.get("name_prefix")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default
