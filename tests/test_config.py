"""
Tests for report configuration loading
"""

from pathlib import Path

import pytest
import yaml

from config import DEFAULT_CONFIG_PATH, load_config
from errors import ConfigError

MINIMAL = {
    "data_dir": "data",
    "cases_file": "cases.csv",
    "disease": "Diabetes",
    "boundaries_file": "adm1.geojson",
    "boundaries_url": "https://example.org/adm1",
    "exceedance_threshold": 1.1,
}


def write_config(tmp_path, **overrides):
    raw = {**MINIMAL, **overrides}
    raw = {k: v for k, v in raw.items() if v is not None}
    path = tmp_path / "report.yaml"
    path.write_text(yaml.safe_dump(raw))
    return path


def test_shipped_config_loads():
    config = load_config()

    assert config.disease == "Cancer"
    assert config.exceedance_threshold == pytest.approx(1.18)
    assert config.cases_path == DEFAULT_CONFIG_PATH.resolve().parent / "data" / "saudi_disease_cases.csv"
    assert config.cases_path.exists()
    assert config.sampler.chains == 4


def test_relative_paths_resolve_against_config_dir(tmp_path):
    config = load_config(str(write_config(tmp_path)))

    assert config.cases_path == tmp_path.resolve() / "data" / "cases.csv"
    assert config.output_dir == tmp_path.resolve() / "output"
    assert config.marginal_points == 75
    assert config.region_column == "Region"


def test_sampler_overrides(tmp_path):
    path = write_config(tmp_path, sampler={"chains": 2, "iter_sampling": 500, "seed": 9})
    sampler = load_config(str(path)).sampler

    assert (sampler.chains, sampler.iter_warmup, sampler.iter_sampling, sampler.seed) == (2, 1000, 500, 9)


def test_threshold_is_required(tmp_path):
    with pytest.raises(ConfigError, match="exceedance_threshold"):
        load_config(str(write_config(tmp_path, exceedance_threshold=None)))


@pytest.mark.parametrize("overrides", [
    {"exceedance_threshold": "high"},
    {"exceedance_threshold": 0},
    {"marginal_points": 1},
    {"sampler": {"chains": 0}},
    {"sampler": {"seed": "random"}},
    {"sampler": {"seed": -1}},
    {"disease": None},
])
def test_invalid_values_are_rejected(tmp_path, overrides):
    with pytest.raises(ConfigError):
        load_config(str(write_config(tmp_path, **overrides)))


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(str(tmp_path / "nope.yaml"))


def test_non_mapping_yaml(tmp_path):
    path = Path(tmp_path) / "list.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ConfigError):
        load_config(str(path))


def test_zero_seed_is_allowed(tmp_path):
    path = write_config(tmp_path, sampler={"seed": 0})
    assert load_config(str(path)).sampler.seed == 0
