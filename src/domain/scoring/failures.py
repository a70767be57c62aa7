"""Per-entry failures raised by converters and the hydrator."""

from __future__ import annotations

from typing import Any


class ConverterFailure(Exception):
    """Base class for failures that reject one entry of an import."""

    failure_type = "ConverterFailure"

    def __init__(self, message: str, *, data: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.data = data


class SongOrChartNotFoundFailure(ConverterFailure):
    """The payload names a song or chart the catalog does not have."""

    failure_type = "SongOrChartNotFound"


class InvalidScoreFailure(ConverterFailure):
    """The payload cannot be mapped onto the GPT's metrics."""

    failure_type = "InvalidScore"


class InternalFailure(ConverterFailure):
    """The catalog is inconsistent; the importer logs these at critical level."""

    failure_type = "InternalError"


class ScoreExistsFailure(ConverterFailure):
    """A score with the same scoreID is already stored for this user."""

    failure_type = "ScoreExists"


__all__ = [
    "ConverterFailure",
    "InternalFailure",
    "InvalidScoreFailure",
    "ScoreExistsFailure",
    "SongOrChartNotFoundFailure",
]
