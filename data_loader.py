"""
Data Loading Module for the Saudi disease map
Handles loading of the case table and the region boundaries with caching
"""

import json
import logging
from pathlib import Path

import geopandas as gpd
import pandas as pd
import requests
import streamlit as st

from errors import DataValidationError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 180


@st.cache_data(show_spinner=False)
def load_case_table(cases_path, disease, region_column="Region",
                    population_column="Population"):
    """
    Load observed counts and population for one disease.

    Non-numeric or negative values become missing for that region only.

    Args:
        cases_path: CSV with one row per region
        disease: Column holding the observed counts (e.g. 'Cancer')
        region_column: Column holding region names
        population_column: Column holding population

    Returns:
        DataFrame with columns region_name, population, observed (nullable Int64)
    """
    path = Path(cases_path)
    if not path.exists():
        raise FileNotFoundError(f"Case file not found: {path}")

    raw = pd.read_csv(path)
    missing_cols = [c for c in (region_column, population_column, disease)
                    if c not in raw.columns]
    if missing_cols:
        raise DataValidationError(
            f"{path.name} is missing columns {missing_cols}; found {list(raw.columns)}"
        )

    cases = pd.DataFrame({
        "region_name": raw[region_column].astype("string").str.strip(),
        "population": _count_column(raw[population_column], population_column),
        "observed": _count_column(raw[disease], disease),
    })

    logger.info("Loaded %d rows of %s cases from %s", len(cases), disease, path.name)
    return cases


def _count_column(series, label):
    """Coerce to nullable non-negative integers, flagging bad values."""
    numeric = pd.to_numeric(series, errors="coerce")
    bad = (
        (series.notna() & numeric.isna())
        | (numeric < 0)
        | (numeric.notna() & (numeric % 1 != 0))
    )
    if bad.any():
        logger.warning("%d invalid %s values set to missing", int(bad.sum()), label)
    numeric = numeric.mask(bad)
    return numeric.astype("Int64")


def _fetch_geoboundaries(api_url):
    """
    Download a geoBoundaries release.

    The API answers with release metadata; the GeoJSON itself sits behind
    'gjDownloadURL'.
    """
    session = requests.Session()
    meta = session.get(api_url, timeout=REQUEST_TIMEOUT)
    meta.raise_for_status()
    payload = meta.json()
    if isinstance(payload, list):
        payload = payload[0]

    download_url = payload.get("gjDownloadURL") or payload.get("simplifiedGeometryGeoJSON")
    if not download_url:
        raise DataValidationError(f"No GeoJSON download link in response from {api_url}")

    resp = session.get(download_url, timeout=REQUEST_TIMEOUT)
    resp.raise_for_status()
    return resp.content


def _open_boundaries(boundaries_path, boundaries_url):
    """
    Return GeoJSON bytes for the boundaries.

    Checks the local file first, then downloads and keeps a local copy.
    """
    local_path = Path(boundaries_path)
    if local_path.exists():
        return local_path.read_bytes()

    logger.info("Boundaries not found locally, downloading from %s", boundaries_url)
    content = _fetch_geoboundaries(boundaries_url)
    local_path.parent.mkdir(parents=True, exist_ok=True)
    local_path.write_bytes(content)
    return content


@st.cache_data(show_spinner=False)
def load_boundaries(boundaries_path, boundaries_url):
    """
    Load first-level administrative boundaries.

    Args:
        boundaries_path: Local GeoJSON path (used if it exists)
        boundaries_url: geoBoundaries API endpoint used otherwise

    Returns:
        GeoDataFrame in EPSG:4326 with the provider's attribute columns
    """
    content = _open_boundaries(boundaries_path, boundaries_url)
    try:
        geojson = json.loads(content.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DataValidationError(f"Boundaries are not valid GeoJSON: {exc}") from exc

    if not geojson.get("features"):
        raise DataValidationError("Boundaries GeoJSON has no features")

    # GeoJSON coordinates are WGS84 by definition
    boundaries = gpd.GeoDataFrame.from_features(geojson["features"], crs="EPSG:4326")

    logger.info("Loaded %d boundary polygons", len(boundaries))
    return boundaries
