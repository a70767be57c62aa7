"""Shared TOML config-loading utilities."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, TypeVar
import tomllib


@dataclass(frozen=True)
class BaseFileConfig:
    """Minimal metadata shared across file-backed configs."""

    name: str
    description: str | None
    file_path: Path


T = TypeVar("T", bound=BaseFileConfig)


def load_toml_configs(
    config_dir: Path,
    parser: Callable[[dict[str, Any], Path], T],
    *,
    duplicate_name_label: str = "config",
) -> list[T]:
    """Load all TOML files in a directory with duplicate-name validation."""
    if not config_dir.exists():
        raise FileNotFoundError(f"Config directory not found: {config_dir}")
    if not config_dir.is_dir():
        raise NotADirectoryError(f"Config path is not a directory: {config_dir}")

    config_files = sorted(config_dir.glob("*.toml"))
    if not config_files:
        raise ValueError(f"No .toml config files found in: {config_dir}")

    configs: list[T] = []
    for file_path in config_files:
        with file_path.open("rb") as file:
            raw = tomllib.load(file)
        configs.append(parser(raw, file_path))

    names = [config.name for config in configs]
    if len(names) != len(set(names)):
        raise ValueError(f"Duplicate {duplicate_name_label} names found in {config_dir}: {names}")

    return configs


__all__ = ["BaseFileConfig", "load_toml_configs"]
