"""Registry of named score, session and profile rating algorithms."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from domain.gpt.config import GPTConfig
from domain.ratings import chunithm, gitadora, iidx, jubeat, maimaidx, museca, popn, sdvx, wacca
from domain.ratings.aggregate import best_n_mean, best_n_sum
from domain.ratings.protocol import RatingKind


@dataclass(frozen=True)
class RatingAlgorithm:
    """One named algorithm for one game."""

    game: str
    kind: RatingKind
    name: str
    calculate: Callable[..., float | None]
    source: str | None = None

    @property
    def source_score_alg(self) -> str:
        """Score algorithm whose values a session or profile algorithm aggregates."""
        return self.source or self.name


_REGISTRY: dict[tuple[str, RatingKind, str], RatingAlgorithm] = {}


def register(algorithm: RatingAlgorithm) -> None:
    """Register one rating algorithm."""
    key = (algorithm.game, algorithm.kind, algorithm.name)
    if key in _REGISTRY:
        raise ValueError(f"Duplicate rating algorithm registration for key={key}")
    _REGISTRY[key] = algorithm


def get_all() -> list[RatingAlgorithm]:
    """Return all registered algorithms in deterministic order."""
    return [
        _REGISTRY[key]
        for key in sorted(_REGISTRY.keys(), key=lambda item: (item[0], item[1].value, item[2]))
    ]


def get(game: str, kind: RatingKind, name: str) -> RatingAlgorithm:
    """Get one registered algorithm by (game, kind, name)."""
    key = (game, kind, name)
    try:
        return _REGISTRY[key]
    except KeyError as exc:
        available = ", ".join(
            f"{g}/{k.value}/{n}"
            for g, k, n in sorted(_REGISTRY.keys(), key=lambda item: (item[0], item[1].value, item[2]))
            if g == game
        )
        raise KeyError(
            f"No rating algorithm registered for {game}/{kind.value}/{name}. Available: {available or 'none'}"
        ) from exc


def algorithms_for(config: GPTConfig, kind: RatingKind) -> list[RatingAlgorithm]:
    """All algorithms a GPT declares for one kind, in declaration order."""
    names = {
        RatingKind.SCORE: config.score_rating_algs,
        RatingKind.SESSION: config.session_rating_algs,
        RatingKind.PROFILE: config.profile_rating_algs,
    }[kind]
    return [get(config.game, kind, name) for name in names]


def validate_gpt_config(config: GPTConfig) -> None:
    """Raise KeyError when a GPT declares an algorithm nobody registered."""
    missing: list[str] = []
    for kind in RatingKind:
        try:
            algorithms_for(config, kind)
        except KeyError as exc:
            missing.append(str(exc))
            continue
        if kind is RatingKind.SCORE:
            continue
        for algorithm in algorithms_for(config, kind):
            if algorithm.source_score_alg not in config.score_rating_algs:
                missing.append(
                    f"{kind.value}/{algorithm.name} reads score algorithm "
                    f"{algorithm.source_score_alg} which is not declared"
                )
    if missing:
        raise KeyError(f"{config.name}: " + "; ".join(missing))


_SESSION_BEST = best_n_mean(10)

# aggregates named differently from the score algorithm they read
_AGGREGATE_SOURCES = {
    ("popn", "naiveClassPoints"): "classPoints",
    ("chunithm", "naiveRating"): "rating",
}

_DEFAULT_ALGORITHMS: tuple[tuple[str, RatingKind, str, Callable[..., Any]], ...] = (
    ("iidx", RatingKind.SCORE, "ktLampRating", iidx.calculate_kt_lamp_rating),
    ("iidx", RatingKind.SCORE, "BPI", iidx.calculate_bpi),
    ("iidx", RatingKind.SESSION, "ktLampRating", _SESSION_BEST),
    ("iidx", RatingKind.SESSION, "BPI", _SESSION_BEST),
    ("iidx", RatingKind.PROFILE, "ktLampRating", best_n_mean(20)),
    ("iidx", RatingKind.PROFILE, "BPI", best_n_mean(20)),
    ("sdvx", RatingKind.SCORE, "VF6", sdvx.calculate_vf6),
    ("sdvx", RatingKind.SESSION, "VF6", _SESSION_BEST),
    ("sdvx", RatingKind.PROFILE, "VF6", best_n_sum(50)),
    ("museca", RatingKind.SCORE, "ktRating", museca.calculate_kt_rating),
    ("museca", RatingKind.SESSION, "ktRating", _SESSION_BEST),
    ("museca", RatingKind.PROFILE, "ktRating", best_n_mean(20)),
    ("gitadora", RatingKind.SCORE, "skill", gitadora.calculate_skill),
    ("gitadora", RatingKind.SESSION, "skill", _SESSION_BEST),
    ("gitadora", RatingKind.PROFILE, "skill", best_n_sum(50)),
    ("wacca", RatingKind.SCORE, "rate", wacca.calculate_rate),
    ("wacca", RatingKind.SESSION, "rate", _SESSION_BEST),
    ("wacca", RatingKind.PROFILE, "rate", best_n_sum(50)),
    ("popn", RatingKind.SCORE, "classPoints", popn.calculate_class_points),
    ("popn", RatingKind.SESSION, "classPoints", _SESSION_BEST),
    ("popn", RatingKind.PROFILE, "naiveClassPoints", best_n_mean(20)),
    ("chunithm", RatingKind.SCORE, "rating", chunithm.calculate_rating),
    ("chunithm", RatingKind.SESSION, "naiveRating", _SESSION_BEST),
    ("chunithm", RatingKind.PROFILE, "naiveRating", best_n_mean(30)),
    ("jubeat", RatingKind.SCORE, "jubility", jubeat.calculate_jubility),
    ("jubeat", RatingKind.SESSION, "jubility", _SESSION_BEST),
    ("jubeat", RatingKind.PROFILE, "jubility", best_n_sum(60)),
    ("maimaidx", RatingKind.SCORE, "rate", maimaidx.calculate_rate),
    ("maimaidx", RatingKind.SESSION, "rate", _SESSION_BEST),
    ("maimaidx", RatingKind.PROFILE, "rate", best_n_sum(50)),
)


def _register_defaults() -> None:
    for game, kind, name, calculate in _DEFAULT_ALGORITHMS:
        source = None if kind is RatingKind.SCORE else _AGGREGATE_SOURCES.get((game, name))
        register(RatingAlgorithm(game=game, kind=kind, name=name, calculate=calculate, source=source))


_register_defaults()


__all__ = ["RatingAlgorithm", "algorithms_for", "get", "get_all", "register", "validate_gpt_config"]
