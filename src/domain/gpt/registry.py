"""Registry of GPT configurations loaded from configs/gpt."""

from __future__ import annotations

from pathlib import Path

from domain.gpt.config import GPTConfig, load_gpt_configs

ROOT_DIR = Path(__file__).resolve().parents[3]
DEFAULT_CONFIG_DIR = ROOT_DIR / "configs" / "gpt"

_REGISTRY: dict[tuple[str, str], GPTConfig] = {}


def register(config: GPTConfig) -> None:
    """Register one GPT config."""
    if config.key in _REGISTRY:
        raise ValueError(f"Duplicate GPT registration for key={config.key}")
    _REGISTRY[config.key] = config


def get_all() -> list[GPTConfig]:
    """Return all registered configs in deterministic order."""
    return [_REGISTRY[key] for key in sorted(_REGISTRY)]


def get(game: str, playtype: str) -> GPTConfig:
    """Get one config by game and playtype."""
    try:
        return _REGISTRY[(game, playtype)]
    except KeyError as exc:
        available = ", ".join(f"{g}:{p}" for g, p in sorted(_REGISTRY))
        raise KeyError(f"No GPT registered for {game}:{playtype}. Available: {available}") from exc


def get_playtypes(game: str) -> list[str]:
    return sorted(playtype for g, playtype in _REGISTRY if g == game)


def is_supported(game: str, playtype: str) -> bool:
    return (game, playtype) in _REGISTRY


def _register_defaults() -> None:
    for config in load_gpt_configs(DEFAULT_CONFIG_DIR):
        register(config)


_register_defaults()


__all__ = ["DEFAULT_CONFIG_DIR", "get", "get_all", "get_playtypes", "is_supported", "register"]
