"""
Report Configuration
Loads the YAML report config and exposes it as a typed, read-only object
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from errors import ConfigError

DEFAULT_CONFIG_PATH = Path(__file__).parent / "report_config.yaml"


@dataclass(frozen=True)
class SamplerSettings:
    chains: int = 4
    iter_warmup: int = 1000
    iter_sampling: int = 1000
    seed: int = 42


@dataclass(frozen=True)
class ReportConfig:
    """
    Settings for one report run.

    exceedance_threshold has no default on purpose: it must be chosen in
    the config file.
    """

    cases_path: Path
    boundaries_path: Path
    boundaries_url: str
    disease: str
    exceedance_threshold: float
    output_dir: Path
    region_column: str = "Region"
    population_column: str = "Population"
    marginal_points: int = 75
    sampler: SamplerSettings = field(default_factory=SamplerSettings)


def _require(raw: Dict[str, Any], key: str) -> Any:
    if key not in raw or raw[key] is None:
        raise ConfigError(f"Missing required config key: {key!r}")
    return raw[key]


def _int_at_least(value: Any, key: str, minimum: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    if number < minimum:
        raise ConfigError(f"{key} must be >= {minimum}, got {number}")
    return number


def _positive_int(value: Any, key: str) -> int:
    return _int_at_least(value, key, 1)


def parse_config(raw: Dict[str, Any], base_dir: Path) -> ReportConfig:
    """
    Build a ReportConfig from a parsed YAML mapping.

    Args:
        raw: Mapping loaded from the YAML file
        base_dir: Directory that relative paths are resolved against

    Returns:
        ReportConfig
    """
    if not isinstance(raw, dict):
        raise ConfigError("Config file must contain a mapping at top level")

    data_dir = base_dir / raw.get("data_dir", ".")

    try:
        threshold = float(_require(raw, "exceedance_threshold"))
    except (TypeError, ValueError):
        raise ConfigError(
            f"exceedance_threshold must be a number, got {raw['exceedance_threshold']!r}"
        )
    if threshold <= 0:
        raise ConfigError(f"exceedance_threshold must be positive, got {threshold}")

    sampler_raw = raw.get("sampler") or {}
    sampler = SamplerSettings(
        chains=_positive_int(sampler_raw.get("chains", 4), "sampler.chains"),
        iter_warmup=_positive_int(sampler_raw.get("iter_warmup", 1000), "sampler.iter_warmup"),
        iter_sampling=_positive_int(sampler_raw.get("iter_sampling", 1000), "sampler.iter_sampling"),
        seed=_int_at_least(sampler_raw.get("seed", 42), "sampler.seed", 0),
    )

    marginal_points = _positive_int(raw.get("marginal_points", 75), "marginal_points")
    if marginal_points < 2:
        raise ConfigError("marginal_points must be at least 2")

    return ReportConfig(
        cases_path=data_dir / _require(raw, "cases_file"),
        boundaries_path=data_dir / _require(raw, "boundaries_file"),
        boundaries_url=str(_require(raw, "boundaries_url")),
        disease=str(_require(raw, "disease")),
        exceedance_threshold=threshold,
        output_dir=base_dir / raw.get("output_dir", "output"),
        region_column=str(raw.get("region_column", "Region")),
        population_column=str(raw.get("population_column", "Population")),
        marginal_points=marginal_points,
        sampler=sampler,
    )


def load_config(config_path: Optional[str] = None) -> ReportConfig:
    """
    Load the report configuration from YAML.

    Args:
        config_path: Path to config file. Defaults to report_config.yaml
            next to this module.

    Returns:
        ReportConfig
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    with open(path, "r") as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    return parse_config(raw, path.resolve().parent)
