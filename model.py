"""
Bayesian disease mapping model (Besag + iid, Poisson)

Prepares the engine inputs from the joined regions and the neighbour graph,
runs the Stan program through CmdStanPy and turns the relative risk draws
into per-region posterior summaries.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import numpy as np
from cmdstanpy import CmdStanModel
from scipy.stats import gaussian_kde

from config import SamplerSettings
from errors import DegenerateMarginalError, ModelFitError
from neighbors import NeighborGraph, edge_list, isolated_regions

logger = logging.getLogger(__name__)

STAN_FILE = Path(__file__).parent / "stan_models" / "bym.stan"


@dataclass(frozen=True)
class Marginal:
    """Posterior marginal density evaluated on an increasing grid."""

    values: np.ndarray
    density: np.ndarray


@dataclass(frozen=True)
class PosteriorSummary:
    """Posterior mean and marginal of the fitted relative risk, per region."""

    regions: Tuple[str, ...]
    mean: np.ndarray
    marginals: Tuple[Marginal, ...]

    def __post_init__(self):
        if not (len(self.regions) == len(self.mean) == len(self.marginals)):
            raise ValueError("regions, mean and marginals must have the same length")

    def index_of(self, region: str) -> int:
        return self.regions.index(region)


def has_likelihood_data(regions) -> np.ndarray:
    """Boolean mask of regions that enter the likelihood."""
    # log(E) needs E > 0; a zero-population region adds nothing to the likelihood
    return (
        regions["observed"].notna()
        & regions["expected"].notna()
        & (regions["expected"] > 0)
    ).fillna(False).to_numpy(dtype=bool)


def build_stan_data(regions, graph: NeighborGraph) -> Dict[str, Any]:
    """
    Prepare the data dictionary for the Stan program.

    Every registry region is a graph node; only regions with observed and
    expected counts present contribute to the likelihood.

    Args:
        regions: GeoDataFrame with 'observed' and 'expected', registry order
        graph: NeighborGraph over the same order

    Returns:
        Dictionary formatted for Stan
    """
    if graph.n_regions != len(regions):
        raise ValueError(
            f"Graph has {graph.n_regions} regions but the table has {len(regions)}"
        )

    complete = has_likelihood_data(regions)
    obs_positions = np.flatnonzero(complete)

    node1, node2 = edge_list(graph)
    connected = np.ones(graph.n_regions)
    connected[isolated_regions(graph)] = 0.0

    return {
        "N": graph.n_regions,
        "N_edges": len(node1),
        "node1": node1,
        "node2": node2,
        "connected": connected.tolist(),
        "N_obs": int(len(obs_positions)),
        "obs_idx": (obs_positions + 1).tolist(),
        "y": regions["observed"].to_numpy(dtype=float, na_value=np.nan)[complete]
        .astype(int).tolist(),
        "E": regions["expected"].to_numpy(dtype=float, na_value=np.nan)[complete].tolist(),
    }


def marginal_from_draws(draws, n_points: int = 75) -> Marginal:
    """
    Smooth posterior draws into a marginal density.

    Args:
        draws: 1-D array of posterior draws for one region
        n_points: Grid size

    Returns:
        Marginal on a grid covering the draws plus three bandwidths either side
    """
    draws = np.asarray(draws, dtype=float)
    if draws.size < 2 or not np.all(np.isfinite(draws)) or np.std(draws) == 0:
        raise DegenerateMarginalError(
            f"Cannot build a marginal from {draws.size} draws with zero spread or non-finite values"
        )

    kde = gaussian_kde(draws)
    bandwidth = float(np.sqrt(kde.covariance[0, 0]))
    lo = max(draws.min() - 3 * bandwidth, 0.0)
    hi = draws.max() + 3 * bandwidth
    grid = np.linspace(lo, hi, n_points)
    return Marginal(values=grid, density=kde(grid))


def summarize_draws(names, rr_draws, n_points: int = 75) -> PosteriorSummary:
    """
    Args:
        names: Region names in registry order
        rr_draws: Array (n_draws, n_regions) of relative risk draws

    Returns:
        PosteriorSummary
    """
    rr_draws = np.asarray(rr_draws, dtype=float)
    if rr_draws.ndim != 2 or rr_draws.shape[1] != len(names):
        raise ModelFitError(
            f"Engine returned draws of shape {rr_draws.shape} for {len(names)} regions"
        )
    marginals = tuple(marginal_from_draws(rr_draws[:, k], n_points) for k in range(len(names)))
    return PosteriorSummary(
        regions=tuple(names),
        mean=rr_draws.mean(axis=0),
        marginals=marginals,
    )


def fit_bym(regions, graph: NeighborGraph, sampler: Optional[SamplerSettings] = None,
            marginal_points: int = 75, stan_file: Optional[Path] = None) -> PosteriorSummary:
    """
    Fit the BYM model and summarise the fitted relative risks.

    Engine failures are fatal and keep the engine's own message.

    Args:
        regions: Joined GeoDataFrame with observed and expected counts
        graph: NeighborGraph in registry order
        sampler: Chains, warmup, draws and seed
        marginal_points: Grid size for each marginal
        stan_file: Override for the Stan program

    Returns:
        PosteriorSummary in registry order
    """
    sampler = sampler or SamplerSettings()
    data = build_stan_data(regions, graph)
    logger.info(
        "Fitting BYM model: %d regions, %d with data, %d edges",
        data["N"], data["N_obs"], data["N_edges"],
    )

    try:
        model = CmdStanModel(stan_file=str(stan_file or STAN_FILE))
        fit = model.sample(
            data=data,
            chains=sampler.chains,
            iter_warmup=sampler.iter_warmup,
            iter_sampling=sampler.iter_sampling,
            seed=sampler.seed,
            show_progress=False,
        )
        rr_draws = fit.stan_variable("rr")
    except (RuntimeError, ValueError) as exc:
        raise ModelFitError(str(exc)) from exc

    logger.info("Sampling finished: %d draws", len(rr_draws))
    return summarize_draws(list(regions.index), rr_draws, marginal_points)
