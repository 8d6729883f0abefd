"""
Shared fixtures: small polygon region sets and posterior helpers
"""

import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
from scipy.stats import norm
from shapely.geometry import box

from model import Marginal, PosteriorSummary
from regions import ISO_TO_REGION


def _normal_marginal(mean, sd, n_points=401):
    x = np.linspace(max(mean - 6 * sd, 0.0), mean + 6 * sd, n_points)
    return Marginal(values=x, density=norm.pdf(x, mean, sd))


def _registry(names, geometries):
    frame = gpd.GeoDataFrame(
        {"region": list(names)}, geometry=list(geometries), crs="EPSG:4326"
    ).set_index("region")
    frame.insert(0, "region_id", range(1, len(frame) + 1))
    return frame


@pytest.fixture
def make_marginal():
    """Factory for normal-shaped marginals on a fine grid."""
    return _normal_marginal


@pytest.fixture
def two_squares():
    """Two unit squares sharing an edge, registry 'A', 'B'."""
    return _registry(["A", "B"], [box(0, 0, 1, 1), box(1, 0, 2, 1)])


@pytest.fixture
def three_regions_one_isolated():
    """A and B touch; C is far away."""
    return _registry(
        ["A", "B", "C"],
        [box(0, 0, 1, 1), box(1, 0, 2, 1), box(5, 5, 6, 6)],
    )


@pytest.fixture
def grid_3x3():
    """3x3 grid of unit squares, row-major, named R0..R8."""
    geoms = [box(c, r, c + 1, r + 1) for r in range(3) for c in range(3)]
    return _registry([f"R{i}" for i in range(9)], geoms)


@pytest.fixture
def saudi_boundaries():
    """Thirteen provider-style polygons in a row, one per ISO code."""
    codes = sorted(ISO_TO_REGION)
    return gpd.GeoDataFrame(
        {
            "shapeName": [f"{ISO_TO_REGION[c]} Region" for c in codes],
            "shapeISO": codes,
        },
        geometry=[box(36 + k, 20, 37 + k, 21) for k in range(len(codes))],
        crs="EPSG:4326",
    )


@pytest.fixture
def posterior_for():
    """Build a PosteriorSummary with normal marginals for given names and means."""
    def _build(names, means, sd=0.1):
        return PosteriorSummary(
            regions=tuple(names),
            mean=np.asarray(means, dtype=float),
            marginals=tuple(_normal_marginal(m, sd) for m in means),
        )
    return _build


@pytest.fixture
def cases_frame():
    """Tabular source with provider-style spellings."""
    return pd.DataFrame({
        "region_name": pd.array(["A", "B"], dtype="string"),
        "population": pd.array([1000, 2000], dtype="Int64"),
        "observed": pd.array([10, 40], dtype="Int64"),
    })
