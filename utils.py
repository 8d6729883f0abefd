"""
Utility Functions for the Saudi disease map
Helper functions for exceedance categories, insights and formatting
"""

import pandas as pd

# P(RR > threshold) cut-points for the cluster map categories
EXCEEDANCE_BINS = [0, 0.2, 0.8, 1]
EXCEEDANCE_LABELS = ["Low", "Uncertain", "High"]


def classify_exceedance(exceedance):
    """
    Bin exceedance probabilities into evidence categories.

    Args:
        exceedance: Series of probabilities (may contain missing values)

    Returns:
        Categorical Series: Low (< 0.2), Uncertain, High (> 0.8); missing stays missing
    """
    values = pd.to_numeric(exceedance, errors="coerce").astype(float)
    return pd.cut(
        values,
        bins=EXCEEDANCE_BINS,
        labels=EXCEEDANCE_LABELS,
        include_lowest=True,
    )


def generate_key_insights(regions, threshold, isolated=()):
    """
    Generate automated insights from the fitted map.

    Args:
        regions: GeoDataFrame with observed, expected, rr and exceedance
        threshold: Exceedance threshold used
        isolated: Names of regions with no neighbours

    Returns:
        Dict with 'concerning', 'positive' and 'neutral' message lists
    """
    insights = {
        'positive': [],
        'concerning': [],
        'neutral': []
    }

    scored = regions[regions["rr"].notna()]
    if scored.empty:
        insights['concerning'].append("No region has enough data for a risk estimate.")
        return insights

    categories = classify_exceedance(scored["exceedance"])

    hotspots = scored[categories == "High"].sort_values("exceedance", ascending=False)
    if len(hotspots) > 0:
        names = ', '.join(hotspots.index.tolist())
        insights['concerning'].append(
            f"Likely high-risk cluster: {names} "
            f"(P(RR > {threshold:g}) above {EXCEEDANCE_BINS[2]:.0%})."
        )

    lows = scored[categories == "Low"]
    if len(lows) > 0:
        insights['positive'].append(
            f"{len(lows)} region(s) show little evidence of excess risk: "
            f"{', '.join(lows.index.tolist())}."
        )

    top = scored["rr"].astype(float).idxmax()
    insights['neutral'].append(
        f"Highest smoothed relative risk: {top} "
        f"(RR = {float(scored.loc[top, 'rr']):.2f}, "
        f"{format_number(scored.loc[top, 'observed'])} observed vs "
        f"{format_number(scored.loc[top, 'expected'])} expected)."
    )

    no_data = regions.index[regions["rr"].isna()].tolist()
    if no_data:
        insights['concerning'].append(
            f"No case data for {', '.join(no_data)}; these regions are not estimated."
        )
    if isolated:
        insights['neutral'].append(
            f"{', '.join(isolated)} share no border with another region, "
            "so their estimate has no spatial smoothing."
        )

    return insights


def format_number(num):
    """Format number with thousands separator."""
    if pd.isna(num):
        return "N/A"
    return f"{num:,.0f}"


def format_probability(num):
    """Format probability as percentage."""
    if pd.isna(num):
        return "N/A"
    return f"{num:.1%}"


def build_summary_table(regions):
    """
    Region table for display and CSV export.

    Args:
        regions: GeoDataFrame with all derived columns

    Returns:
        Plain DataFrame without geometry, one row per region
    """
    table = pd.DataFrame(regions.drop(columns="geometry"))
    table["category"] = classify_exceedance(table["exceedance"])
    return table.reset_index()
