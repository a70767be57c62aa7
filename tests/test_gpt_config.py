"""Tests for GPT TOML config loading and the GPT registry."""

from __future__ import annotations

from pathlib import Path

import pytest

from domain.classes.values import IIDXDans
from domain.gpt import registry as gpt_registry
from domain.gpt.config import DifficultyType, MetricGroup, MetricType, load_gpt_configs

MINIMAL_GPT = """
[gpt]
game = "testgame"
playtype = "Single"
primary_metric = "{primary}"
score_bucket = "lamp"
ordered_judgements = ["perfect", "miss"]
supported_match_types = ["songTitle"]

[metrics.mandatory.score]
type = "INTEGER"

[metrics.mandatory.lamp]
type = "ENUM"
values = ["FAILED", "CLEAR"]
minimum_relevant_value = "{minimum}"

[metrics.derived.percent]
type = "DECIMAL"
formula = "percent_of_max"
params = {{ source = "score", max = 1000 }}

[metrics.additional.fast]
type = "INTEGER"

[ratings]
default_score = "rating"
default_session = "rating"
default_profile = "rating"

[ratings.score]
rating = "A rating."

[ratings.session]
rating = "A session rating."

[ratings.profile]
rating = "A profile rating."

[difficulties]
type = "FIXED"
order = ["EASY", "HARD"]
default = "HARD"
"""


def _write(tmp_path: Path, *, primary: str = "percent", minimum: str = "CLEAR", extra: str = "") -> Path:
    (tmp_path / "testgame.toml").write_text(MINIMAL_GPT.format(primary=primary, minimum=minimum) + extra)
    return tmp_path


def test_load_minimal_gpt_config(tmp_path: Path) -> None:
    configs = load_gpt_configs(_write(tmp_path))
    assert len(configs) == 1

    config = configs[0]
    assert config.key == ("testgame", "Single")
    assert config.name == "testgame:Single"
    assert list(config.mandatory_metrics) == ["score", "lamp"]
    assert config.derived_metrics["percent"].group is MetricGroup.DERIVED
    assert config.metric("fast").type is MetricType.INTEGER
    assert config.difficulties.type is DifficultyType.FIXED
    assert config.esd_windows == ()
    assert [metric.name for metric in config.enum_metrics()] == ["lamp"]


def test_primary_metric_must_be_mandatory_or_derived(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="primary_metric"):
        load_gpt_configs(_write(tmp_path, primary="fast"))


def test_enum_minimum_must_be_one_of_its_values(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="minimum_relevant_value"):
        load_gpt_configs(_write(tmp_path, minimum="FULL COMBO"))


def test_metric_names_are_unique_across_groups(tmp_path: Path) -> None:
    extra = '\n[metrics.additional.score]\ntype = "INTEGER"\n'
    with pytest.raises(ValueError):
        load_gpt_configs(_write(tmp_path, extra=extra))


def test_reserved_metric_names_are_rejected(tmp_path: Path) -> None:
    extra = '\n[metrics.additional.esd]\ntype = "DECIMAL"\n'
    with pytest.raises(ValueError, match="reserved"):
        load_gpt_configs(_write(tmp_path, extra=extra))


def test_unknown_class_value_set_is_rejected(tmp_path: Path) -> None:
    extra = '\n[classes.dan]\nvalues = "NotAClassSet"\n'
    with pytest.raises(ValueError, match=r"\[classes.dan\].values"):
        load_gpt_configs(_write(tmp_path, extra=extra))


def test_missing_directory_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_gpt_configs(tmp_path / "missing")


@pytest.mark.parametrize("config", gpt_registry.get_all(), ids=lambda config: config.name)
def test_shipped_configs_hold_metric_invariants(config) -> None:
    scored = {metric.name for metric in config.scored_metrics()}
    assert config.primary_metric in scored

    for metric in config.enum_metrics():
        assert metric.minimum_relevant_value in metric.values

    for metric in config.additional_metrics.values():
        assert metric.type is not MetricType.ENUM or metric.minimum_relevant_value in metric.values

    assert config.default_score_rating_alg in config.score_rating_algs
    assert config.default_profile_rating_alg in config.profile_rating_algs


def test_registry_lookup() -> None:
    config = gpt_registry.get("iidx", "SP")
    assert config.supported_classes["dan"].values is IIDXDans
    assert config.supported_classes["dan"].name_of(IIDXDans.KAIDEN) == "KAIDEN"
    assert gpt_registry.get_playtypes("iidx") == ["DP", "SP"]
    assert gpt_registry.is_supported("sdvx", "Single")
    assert not gpt_registry.is_supported("sdvx", "Double")


def test_registry_unknown_gpt_lists_available() -> None:
    with pytest.raises(KeyError, match="iidx:SP"):
        gpt_registry.get("iidx", "Triple")
