"""
Data Processing Module for the Saudi disease map
Handles the registry join and expected-count (indirect standardisation) calculations
"""

import logging

import pandas as pd

from errors import DataValidationError, UndefinedRateError
from regions import normalize_region_name

logger = logging.getLogger(__name__)


def join_case_data(registry, cases):
    """
    Join per-region counts onto the Region Registry by canonical name.

    Table names are matched exactly first, then through
    normalize_region_name(). Unmatched table rows are dropped with a
    warning; registry regions with no table row keep population/observed
    missing.

    Args:
        registry: GeoDataFrame indexed by canonical region name
        cases: DataFrame from load_case_table()

    Returns:
        GeoDataFrame aligned to the registry with population and observed
    """
    cases = cases.copy()
    # Exact registry names pass through; other spellings go through the alias table
    cases["region"] = [
        name if name in registry.index else normalize_region_name(name)
        for name in cases["region_name"]
    ]

    unmatched = cases.loc[cases["region"].isna(), "region_name"].tolist()
    unmatched += cases.loc[
        cases["region"].notna() & ~cases["region"].isin(registry.index), "region_name"
    ].tolist()
    if unmatched:
        logger.warning("Case rows with no matching region: %s", unmatched)
    cases = cases[cases["region"].isin(registry.index)]

    dupes = cases.loc[cases["region"].duplicated(keep=False), "region_name"].tolist()
    if dupes:
        raise DataValidationError(f"More than one case row for the same region: {dupes}")

    counts = cases.set_index("region")[["population", "observed"]]

    joined = registry.drop(columns=["population", "observed"], errors="ignore")
    joined = joined.join(counts, how="left")
    joined["population"] = joined["population"].astype("Int64")
    joined["observed"] = joined["observed"].astype("Int64")

    absent = joined.index[joined["population"].isna() | joined["observed"].isna()].tolist()
    if absent:
        logger.warning("Regions without complete case data: %s", absent)

    return joined


def compute_expected_counts(population, observed):
    """
    Expected counts by indirect standardisation with a single stratum.

    expected_i = population_i * sum(observed) / sum(population), with both
    sums taken over regions where population and observed are present.

    Args:
        population: Series of population per region (nullable)
        observed: Series of observed counts per region (nullable)

    Returns:
        Float64 Series; missing where either input is missing
    """
    population = pd.Series(population).astype("Float64")
    if isinstance(observed, pd.Series):
        observed = observed.reindex(population.index)
    observed = pd.Series(observed, index=population.index).astype("Float64")

    complete = population.notna() & observed.notna()
    total_population = population[complete].sum()
    if not complete.any() or total_population == 0:
        raise UndefinedRateError(
            "Total population is zero; the incidence rate and expected counts are undefined"
        )

    rate = observed[complete].sum() / total_population
    expected = (population * rate).astype("Float64")
    expected[~complete] = pd.NA
    return expected


def compute_stratified_expected_counts(strata_table, region_col="region",
                                       stratum_col="stratum",
                                       population_col="population",
                                       observed_col="observed"):
    """
    Expected counts by indirect standardisation over strata (e.g. age/sex).

    Args:
        strata_table: Long DataFrame, one row per region x stratum
        region_col: Column with the region key
        stratum_col: Column with the stratum label
        population_col: Column with population
        observed_col: Column with observed counts

    Returns:
        Float64 Series of expected counts indexed by region
    """
    table = strata_table[[region_col, stratum_col, population_col, observed_col]].copy()
    table[population_col] = table[population_col].astype("Float64")
    table[observed_col] = table[observed_col].astype("Float64")

    complete = table[population_col].notna() & table[observed_col].notna()
    totals = table[complete].groupby(stratum_col)[[population_col, observed_col]].sum()

    empty = totals.index[totals[population_col] == 0].tolist()
    if totals.empty or empty:
        raise UndefinedRateError(
            f"Zero total population in strata {empty}; stratum rates are undefined"
        )

    rates = totals[observed_col] / totals[population_col]
    table["expected"] = table[population_col] * table[stratum_col].map(rates).astype("Float64")
    table.loc[~complete, "expected"] = pd.NA

    # min_count=1 keeps an all-missing region missing instead of 0
    expected = table.groupby(region_col, sort=True)["expected"].sum(min_count=1)
    incomplete = table.loc[~complete, region_col].unique()
    expected[expected.index.isin(incomplete)] = pd.NA
    return expected.astype("Float64")


def add_expected_counts(regions):
    """
    Add expected counts and the raw standardised ratio.

    Args:
        regions: Joined GeoDataFrame from join_case_data()

    Returns:
        Copy with 'expected' and 'raw_rr' (observed / expected) columns
    """
    regions = regions.copy()
    regions["expected"] = compute_expected_counts(regions["population"], regions["observed"])

    ratio = regions["observed"].astype("Float64") / regions["expected"]
    # Zero expected with zero population gives 0/0; keep it missing, not NaN
    zero_expected = (regions["expected"] == 0).fillna(False).astype(bool)
    regions["raw_rr"] = ratio.mask(zero_expected).astype("Float64")

    logger.info(
        "Expected counts computed for %d of %d regions",
        int(regions["expected"].notna().sum()), len(regions),
    )
    return regions
