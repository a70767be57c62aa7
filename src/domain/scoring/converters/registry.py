"""Registry of import types."""

from __future__ import annotations

from domain.scoring.converters import batch_manual, cg_museca, eamusement_csv, kai
from domain.scoring.converters.base import ImportTypeDescriptor

_REGISTRY: dict[str, ImportTypeDescriptor] = {}


def register(descriptor: ImportTypeDescriptor) -> None:
    if descriptor.import_type in _REGISTRY:
        raise ValueError(f"Duplicate import type registration for {descriptor.import_type}")
    _REGISTRY[descriptor.import_type] = descriptor


def get_all() -> list[ImportTypeDescriptor]:
    return [_REGISTRY[key] for key in sorted(_REGISTRY)]


def get(import_type: str) -> ImportTypeDescriptor:
    try:
        return _REGISTRY[import_type]
    except KeyError as exc:
        available = ", ".join(sorted(_REGISTRY))
        raise KeyError(f"No import type registered for {import_type}. Available: {available}") from exc


def _register_defaults() -> None:
    for descriptor in (
        cg_museca.DESCRIPTOR,
        kai.KAI_IIDX_DESCRIPTOR,
        kai.KAI_SDVX_DESCRIPTOR,
        batch_manual.DESCRIPTOR,
        eamusement_csv.DESCRIPTOR,
    ):
        register(descriptor)


_register_defaults()


__all__ = ["get", "get_all", "register"]
