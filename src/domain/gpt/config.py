"""Load per game+playtype (GPT) definitions from TOML files."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from pathlib import Path
from typing import Any, Mapping

from domain.classes.values import CLASS_VALUE_SETS
from domain.common import RESERVED_SCORE_DATA_KEYS
from domain.config_base import BaseFileConfig, load_toml_configs
from domain.scoring.derived import DERIVED_FORMULAS

MATCH_TYPES = ("inGameID", "tachiSongID", "songTitle")


class MetricType(str, Enum):
    INTEGER = "INTEGER"
    DECIMAL = "DECIMAL"
    ENUM = "ENUM"
    GRAPH = "GRAPH"


class MetricGroup(str, Enum):
    """Where a metric comes from."""

    MANDATORY = "mandatory"
    DERIVED = "derived"
    ADDITIONAL = "additional"


class DifficultyType(str, Enum):
    FIXED = "FIXED"
    DYNAMIC = "DYNAMIC"


@dataclass(frozen=True)
class MetricConfig:
    """One metric of a GPT. ENUM metrics are ordered worst to best."""

    name: str
    type: MetricType
    group: MetricGroup
    values: tuple[str, ...] = ()
    minimum_relevant_value: str | None = None
    formula: str | None = None
    params: Mapping[str, Any] = field(default_factory=dict)

    def index_of(self, value: str) -> int:
        """Rank of an enum value; raises ValueError when it isn't one."""
        return self.values.index(value)


@dataclass(frozen=True)
class ClassConfig:
    name: str
    values: type[IntEnum]
    downgradable: bool
    can_be_batch_manual_submitted: bool

    def value_of(self, class_name: str) -> int:
        return int(self.values[class_name])

    def name_of(self, value: int) -> str:
        return self.values(value).name


@dataclass(frozen=True)
class DifficultyConfig:
    type: DifficultyType
    order: tuple[str, ...] = ()
    shorthand: Mapping[str, str] = field(default_factory=dict)
    colours: Mapping[str, str] = field(default_factory=dict)
    default: str | None = None


@dataclass(frozen=True)
class JudgementWindow:
    """Hit window (in ms either side) and the score a hit inside it is worth."""

    name: str
    ms: float
    value: float


@dataclass(frozen=True)
class GPTConfig(BaseFileConfig):
    """Everything that makes one game+playtype behave the way it does."""

    game: str
    playtype: str
    mandatory_metrics: Mapping[str, MetricConfig]
    derived_metrics: Mapping[str, MetricConfig]
    additional_metrics: Mapping[str, MetricConfig]
    primary_metric: str
    score_rating_algs: Mapping[str, str]
    session_rating_algs: Mapping[str, str]
    profile_rating_algs: Mapping[str, str]
    default_score_rating_alg: str
    default_session_rating_alg: str
    default_profile_rating_alg: str
    difficulties: DifficultyConfig
    supported_classes: Mapping[str, ClassConfig]
    ordered_judgements: tuple[str, ...]
    score_bucket: str
    supported_versions: tuple[str, ...]
    supported_tierlists: Mapping[str, str]
    supported_match_types: tuple[str, ...]
    esd_windows: tuple[JudgementWindow, ...] = ()

    @property
    def key(self) -> tuple[str, str]:
        return (self.game, self.playtype)

    def metric(self, name: str) -> MetricConfig:
        for group in (self.mandatory_metrics, self.derived_metrics, self.additional_metrics):
            if name in group:
                return group[name]
        raise KeyError(f"{self.name} has no metric named '{name}'")

    def scored_metrics(self) -> list[MetricConfig]:
        """Mandatory then derived metrics, in declaration order."""
        return [*self.mandatory_metrics.values(), *self.derived_metrics.values()]

    def enum_metrics(self) -> list[MetricConfig]:
        return [metric for metric in self.scored_metrics() if metric.type is MetricType.ENUM]


def load_gpt_configs(config_dir: Path) -> list[GPTConfig]:
    """Load and validate all GPT TOML config files in a directory."""
    return load_toml_configs(
        config_dir,
        _parse_gpt_config,
        duplicate_name_label="GPT",
    )


def _parse_gpt_config(raw: dict[str, Any], file_path: Path) -> GPTConfig:
    gpt_raw = raw.get("gpt", {})
    metrics_raw = raw.get("metrics", {})
    ratings_raw = raw.get("ratings", {})

    game = str(gpt_raw.get("game", "")).strip()
    if not game:
        raise ValueError(f"{file_path}: [gpt].game is required")
    playtype = str(gpt_raw.get("playtype", "")).strip()
    if not playtype:
        raise ValueError(f"{file_path}: [gpt].playtype is required")

    description_value = gpt_raw.get("description")
    description = None if description_value is None else str(description_value)

    mandatory = _parse_metric_group(metrics_raw.get("mandatory", {}), MetricGroup.MANDATORY, file_path)
    derived = _parse_metric_group(metrics_raw.get("derived", {}), MetricGroup.DERIVED, file_path)
    additional = _parse_metric_group(metrics_raw.get("additional", {}), MetricGroup.ADDITIONAL, file_path)
    if not mandatory:
        raise ValueError(f"{file_path}: [metrics.mandatory] must declare at least one metric")

    config = GPTConfig(
        name=f"{game}:{playtype}",
        description=description,
        file_path=file_path,
        game=game,
        playtype=playtype,
        mandatory_metrics=mandatory,
        derived_metrics=derived,
        additional_metrics=additional,
        primary_metric=str(gpt_raw.get("primary_metric", "")),
        score_rating_algs=_parse_alg_descriptions(ratings_raw.get("score", {}), "score", file_path),
        session_rating_algs=_parse_alg_descriptions(ratings_raw.get("session", {}), "session", file_path),
        profile_rating_algs=_parse_alg_descriptions(ratings_raw.get("profile", {}), "profile", file_path),
        default_score_rating_alg=str(ratings_raw.get("default_score", "")),
        default_session_rating_alg=str(ratings_raw.get("default_session", "")),
        default_profile_rating_alg=str(ratings_raw.get("default_profile", "")),
        difficulties=_parse_difficulties(raw.get("difficulties", {}), file_path),
        supported_classes=_parse_classes(raw.get("classes", {}), file_path),
        ordered_judgements=tuple(str(value) for value in gpt_raw.get("ordered_judgements", [])),
        score_bucket=str(gpt_raw.get("score_bucket", "")),
        supported_versions=tuple(str(value) for value in gpt_raw.get("supported_versions", [])),
        supported_tierlists={str(key): str(value) for key, value in raw.get("tierlists", {}).items()},
        supported_match_types=tuple(str(value) for value in gpt_raw.get("supported_match_types", [])),
        esd_windows=tuple(
            JudgementWindow(name=str(item["name"]), ms=float(item["ms"]), value=float(item["value"]))
            for item in raw.get("esd", [])
        ),
    )
    _validate_config(file_path=file_path, config=config)
    return config


def _parse_metric_group(
    raw: dict[str, Any],
    group: MetricGroup,
    file_path: Path,
) -> dict[str, MetricConfig]:
    metrics: dict[str, MetricConfig] = {}
    for name, metric_raw in raw.items():
        section = f"[metrics.{group.value}.{name}]"
        if name in RESERVED_SCORE_DATA_KEYS or name.endswith("Index"):
            raise ValueError(f"{file_path}: {section} uses a reserved metric name")

        try:
            metric_type = MetricType(str(metric_raw.get("type", "")).upper())
        except ValueError as exc:
            raise ValueError(
                f"{file_path}: {section}.type must be one of "
                f"{', '.join(item.value for item in MetricType)}"
            ) from exc

        values = tuple(str(value) for value in metric_raw.get("values", []))
        minimum = metric_raw.get("minimum_relevant_value")
        if metric_type is MetricType.ENUM:
            if not values:
                raise ValueError(f"{file_path}: {section}.values is required for ENUM metrics")
            if len(set(values)) != len(values):
                raise ValueError(f"{file_path}: {section}.values contains duplicates")
            if minimum not in values:
                raise ValueError(
                    f"{file_path}: {section}.minimum_relevant_value must be one of its values"
                )

        formula = metric_raw.get("formula")
        if group is MetricGroup.DERIVED:
            if formula not in DERIVED_FORMULAS:
                raise ValueError(
                    f"{file_path}: {section}.formula must be one of {', '.join(sorted(DERIVED_FORMULAS))}"
                )
        elif formula is not None:
            raise ValueError(f"{file_path}: {section}.formula is only allowed on derived metrics")

        metrics[name] = MetricConfig(
            name=name,
            type=metric_type,
            group=group,
            values=values,
            minimum_relevant_value=None if minimum is None else str(minimum),
            formula=formula,
            params=dict(metric_raw.get("params", {})),
        )
    return metrics


def _parse_alg_descriptions(raw: dict[str, Any], kind: str, file_path: Path) -> dict[str, str]:
    if not raw:
        raise ValueError(f"{file_path}: [ratings.{kind}] must declare at least one algorithm")
    return {str(name): str(description) for name, description in raw.items()}


def _parse_difficulties(raw: dict[str, Any], file_path: Path) -> DifficultyConfig:
    try:
        difficulty_type = DifficultyType(str(raw.get("type", "")).upper())
    except ValueError as exc:
        raise ValueError(f"{file_path}: [difficulties].type must be FIXED or DYNAMIC") from exc

    order = tuple(str(value) for value in raw.get("order", []))
    default = raw.get("default")
    if difficulty_type is DifficultyType.FIXED:
        if not order:
            raise ValueError(f"{file_path}: [difficulties].order is required for FIXED difficulties")
        if default not in order:
            raise ValueError(f"{file_path}: [difficulties].default must be one of [difficulties].order")

    return DifficultyConfig(
        type=difficulty_type,
        order=order,
        shorthand={str(key): str(value) for key, value in raw.get("shorthand", {}).items()},
        colours={str(key): str(value) for key, value in raw.get("colours", {}).items()},
        default=None if default is None else str(default),
    )


def _parse_classes(raw: dict[str, Any], file_path: Path) -> dict[str, ClassConfig]:
    classes: dict[str, ClassConfig] = {}
    for name, class_raw in raw.items():
        value_set = str(class_raw.get("values", ""))
        if value_set not in CLASS_VALUE_SETS:
            raise ValueError(
                f"{file_path}: [classes.{name}].values must be one of {', '.join(sorted(CLASS_VALUE_SETS))}"
            )
        classes[name] = ClassConfig(
            name=name,
            values=CLASS_VALUE_SETS[value_set],
            downgradable=bool(class_raw.get("downgradable", False)),
            can_be_batch_manual_submitted=bool(class_raw.get("can_be_batch_manual_submitted", False)),
        )
    return classes


def _validate_config(*, file_path: Path, config: GPTConfig) -> None:
    seen: set[str] = set()
    for group in (config.mandatory_metrics, config.derived_metrics, config.additional_metrics):
        duplicated = seen.intersection(group)
        if duplicated:
            raise ValueError(f"{file_path}: metric names must be unique across groups: {sorted(duplicated)}")
        seen.update(group)

    scored = {metric.name: metric for metric in config.scored_metrics()}
    if config.primary_metric not in scored:
        raise ValueError(f"{file_path}: [gpt].primary_metric must be a mandatory or derived metric")

    bucket = scored.get(config.score_bucket)
    if bucket is None or bucket.type is not MetricType.ENUM:
        raise ValueError(f"{file_path}: [gpt].score_bucket must name an ENUM metric")

    available = list(config.mandatory_metrics)
    for metric in config.derived_metrics.values():
        section = f"[metrics.derived.{metric.name}]"
        source = metric.params.get("source", "score")
        if source not in available:
            raise ValueError(f"{file_path}: {section}.params.source must name an earlier metric")
        if metric.formula == "enum_from_thresholds":
            boundaries = list(metric.params.get("boundaries", []))
            if len(boundaries) != len(metric.values):
                raise ValueError(f"{file_path}: {section}.params.boundaries must match its values")
            if boundaries != sorted(boundaries):
                raise ValueError(f"{file_path}: {section}.params.boundaries must be ascending")
        if metric.formula == "percent_of_max" and "max" not in metric.params:
            raise ValueError(f"{file_path}: {section}.params.max is required")
        available.append(metric.name)

    for kind, algs, default in (
        ("score", config.score_rating_algs, config.default_score_rating_alg),
        ("session", config.session_rating_algs, config.default_session_rating_alg),
        ("profile", config.profile_rating_algs, config.default_profile_rating_alg),
    ):
        if default not in algs:
            raise ValueError(f"{file_path}: [ratings].default_{kind} must be one of [ratings.{kind}]")

    unknown_match_types = set(config.supported_match_types) - set(MATCH_TYPES)
    if unknown_match_types:
        raise ValueError(f"{file_path}: unknown match types {sorted(unknown_match_types)}")

    if config.esd_windows:
        if "percent" not in scored:
            raise ValueError(f"{file_path}: [[esd]] requires a percent metric")
        windows = [window.ms for window in config.esd_windows]
        if windows != sorted(windows) or windows[0] <= 0:
            raise ValueError(f"{file_path}: [[esd]] windows must be positive and ascending")


__all__ = [
    "ClassConfig",
    "DifficultyConfig",
    "DifficultyType",
    "GPTConfig",
    "JudgementWindow",
    "MATCH_TYPES",
    "MetricConfig",
    "MetricGroup",
    "MetricType",
    "load_gpt_configs",
]
