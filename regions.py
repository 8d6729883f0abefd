"""
Region Registry for the Saudi disease map
Canonical region names, the name/ISO mapping tables and provider relabelling
"""

import logging
import re

import geopandas as gpd
import pandas as pd

from errors import RegionMappingError

logger = logging.getLogger(__name__)

# Alphabetical; position + 1 is the model index (region_id)
CANONICAL_REGIONS = (
    "Al Bahah",
    "Al Jawf",
    "Al Madinah",
    "Al Qassim",
    "Asir",
    "Eastern Province",
    "Hail",
    "Jazan",
    "Makkah",
    "Najran",
    "Northern Borders",
    "Riyadh",
    "Tabuk",
)

# ISO 3166-2:SA
ISO_TO_REGION = {
    "SA-01": "Riyadh",
    "SA-02": "Makkah",
    "SA-03": "Al Madinah",
    "SA-04": "Eastern Province",
    "SA-05": "Al Qassim",
    "SA-06": "Hail",
    "SA-07": "Tabuk",
    "SA-08": "Northern Borders",
    "SA-09": "Jazan",
    "SA-10": "Najran",
    "SA-11": "Al Bahah",
    "SA-12": "Al Jawf",
    "SA-14": "Asir",
}

# Keys are normalised spellings (see _name_key); values are canonical names.
# Covers geoBoundaries, GADM, Natural Earth and the usual spreadsheet forms.
NAME_ALIASES = {
    "al bahah": "Al Bahah",
    "al baha": "Al Bahah",
    "baha": "Al Bahah",
    "bahah": "Al Bahah",
    "al jawf": "Al Jawf",
    "al jouf": "Al Jawf",
    "jawf": "Al Jawf",
    "jouf": "Al Jawf",
    "al madinah": "Al Madinah",
    "al madinah al munawwarah": "Al Madinah",
    "madinah": "Al Madinah",
    "medina": "Al Madinah",
    "al qassim": "Al Qassim",
    "al qasim": "Al Qassim",
    "qassim": "Al Qassim",
    "qasim": "Al Qassim",
    "asir": "Asir",
    "aseer": "Asir",
    "eastern": "Eastern Province",
    "ash sharqiyah": "Eastern Province",
    "ash sharqiyah eastern": "Eastern Province",
    "sharqiyah": "Eastern Province",
    "hail": "Hail",
    "hayil": "Hail",
    "jazan": "Jazan",
    "jizan": "Jazan",
    "gizan": "Jazan",
    "makkah": "Makkah",
    "makkah al mukarramah": "Makkah",
    "mecca": "Makkah",
    "najran": "Najran",
    "northern borders": "Northern Borders",
    "northern border": "Northern Borders",
    "al hudud ash shamaliyah": "Northern Borders",
    "al hudud ash shamaliya": "Northern Borders",
    "riyadh": "Riyadh",
    "ar riyad": "Riyadh",
    "ar riyadh": "Riyadh",
    "riyad": "Riyadh",
    "tabuk": "Tabuk",
    "tabouk": "Tabuk",
}

_GENERIC_WORDS = {"region", "province", "emirate", "administrative", "of", "the"}


def _name_key(name):
    """Casefold, strip punctuation and generic words, collapse spaces."""
    text = str(name).casefold()
    text = re.sub(r"['’`]", "", text)
    text = re.sub(r"[-_.,()/]", " ", text)
    words = [w for w in text.split() if w not in _GENERIC_WORDS]
    return " ".join(words)


def normalize_region_name(name):
    """
    Map a raw region spelling to its canonical name.

    Args:
        name: Region name as spelled by a data provider

    Returns:
        Canonical name, or None if the spelling is unknown
    """
    if name is None or pd.isna(name):
        return None
    key = _name_key(name)
    if key in NAME_ALIASES:
        return NAME_ALIASES[key]
    # Canonical names with extra words, e.g. "Eastern Province" already stripped
    for canonical in CANONICAL_REGIONS:
        if _name_key(canonical) == key:
            return canonical
    return None


def relabel_boundaries(boundaries, iso_column="shapeISO", name_column="shapeName",
                       canonical=CANONICAL_REGIONS):
    """
    Attach canonical region names to provider polygons.

    ISO codes are preferred; features without a usable code fall back to
    name normalisation. The result must be a bijection onto `canonical`.

    Args:
        boundaries: GeoDataFrame from the boundary provider
        iso_column: Column with ISO 3166-2 codes (may be absent)
        name_column: Column with provider region names
        canonical: Expected canonical region names

    Returns:
        GeoDataFrame with a 'region' column and the geometry
    """
    labels = []
    for _, row in boundaries.iterrows():
        region = None
        if iso_column in boundaries.columns and pd.notna(row[iso_column]):
            region = ISO_TO_REGION.get(str(row[iso_column]).strip().upper())
        if region is None and name_column in boundaries.columns:
            region = normalize_region_name(row[name_column])
        labels.append(region)

    provider_names = (
        boundaries[name_column].astype(str).tolist()
        if name_column in boundaries.columns
        else [str(i) for i in boundaries.index]
    )
    unmatched = [p for p, r in zip(provider_names, labels) if r is None or r not in canonical]
    matched = pd.Series([r for r in labels if r is not None and r in canonical], dtype=object)
    duplicated = sorted(matched[matched.duplicated()].unique().tolist())
    missing = sorted(set(canonical) - set(matched))

    if unmatched or duplicated or missing or len(boundaries) != len(canonical):
        raise RegionMappingError(
            f"Provider returned {len(boundaries)} regions, expected {len(canonical)}; "
            f"unmatched={unmatched}, duplicated={duplicated}, missing={missing}"
        )

    relabelled = gpd.GeoDataFrame(
        {"region": labels},
        geometry=boundaries.geometry.values,
        crs=boundaries.crs,
    )
    logger.info("Relabelled %d provider regions", len(relabelled))
    return relabelled


def build_region_registry(boundaries, canonical=CANONICAL_REGIONS):
    """
    Build the ordered Region Registry.

    Args:
        boundaries: GeoDataFrame with 'region' and geometry columns
        canonical: Names the registry must contain exactly

    Returns:
        GeoDataFrame indexed by region name (alphabetical) with region_id 1..N
    """
    names = set(boundaries["region"])
    if names != set(canonical) or boundaries["region"].duplicated().any():
        raise RegionMappingError(
            f"Registry regions {sorted(names)} do not match canonical {sorted(canonical)}"
        )

    registry = (
        boundaries[["region", "geometry"]]
        .sort_values("region")
        .set_index("region")
    )
    registry.insert(0, "region_id", range(1, len(registry) + 1))
    return registry
