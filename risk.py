"""
Relative risk and exceedance probabilities from the posterior
"""

import logging

import numpy as np
import pandas as pd
from scipy.integrate import cumulative_trapezoid

from errors import DegenerateMarginalError, ModelFitError
from model import has_likelihood_data

logger = logging.getLogger(__name__)


def exceedance_probability(marginal, threshold):
    """
    P(relative risk > threshold) = 1 - CDF(threshold) under the marginal.

    The CDF is the normalised cumulative trapezoid integral of the density;
    thresholds below/above the grid give 1/0.

    Args:
        marginal: Marginal with increasing values and their density
        threshold: Relative risk threshold

    Returns:
        Probability in [0, 1]
    """
    x = np.asarray(marginal.values, dtype=float)
    d = np.asarray(marginal.density, dtype=float)

    if x.size < 2 or x.shape != d.shape:
        raise DegenerateMarginalError(f"Marginal has {x.size} grid points and {d.size} densities")
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(d))):
        raise DegenerateMarginalError("Marginal contains non-finite values")
    if np.any(np.diff(x) <= 0):
        raise DegenerateMarginalError("Marginal grid is not strictly increasing")
    if np.any(d < 0):
        raise DegenerateMarginalError("Marginal has negative density")

    cdf = cumulative_trapezoid(d, x, initial=0.0)
    mass = cdf[-1]
    if mass <= 0:
        raise DegenerateMarginalError("Marginal has zero probability mass")
    cdf = cdf / mass

    below = np.interp(threshold, x, cdf, left=0.0, right=1.0)
    return float(np.clip(1.0 - below, 0.0, 1.0))


def summarize_risk(regions, posterior, threshold):
    """
    Attach relative risk and exceedance probability to each region.

    Relative risk is the posterior mean of the fitted value. Regions left
    out of the likelihood (missing counts or zero expected) keep both
    fields missing.

    Args:
        regions: GeoDataFrame from add_expected_counts()
        posterior: PosteriorSummary from the model fit
        threshold: Exceedance threshold on the relative risk scale

    Returns:
        Copy of regions with 'rr' and 'exceedance' (Float64) columns
    """
    regions = regions.copy()
    rr = pd.Series(pd.NA, index=regions.index, dtype="Float64")
    exceedance = pd.Series(pd.NA, index=regions.index, dtype="Float64")

    for region in regions.index[has_likelihood_data(regions)]:
        if region not in posterior.regions:
            raise ModelFitError(f"No posterior for region {region!r}")
        k = posterior.index_of(region)
        rr[region] = float(posterior.mean[k])
        exceedance[region] = exceedance_probability(posterior.marginals[k], threshold)

    regions["rr"] = rr
    regions["exceedance"] = exceedance
    logger.info(
        "Exceedance P(RR > %.2f) computed for %d regions",
        threshold, int(exceedance.notna().sum()),
    )
    return regions
