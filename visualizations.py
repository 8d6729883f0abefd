"""
Visualization Module for the Saudi disease map
Plotly choropleth generation for the three report maps
"""

import json

import numpy as np
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

MAP_CENTER = {"lat": 23.9, "lon": 45.1}
MAP_ZOOM = 3.8
MISSING_COLOR = "#cccccc"


def color_domain(values):
    """
    Colour range for a continuous scale.

    Args:
        values: Series of the mapped attribute (may contain missing values)

    Returns:
        (low, high) over the non-missing values
    """
    finite = pd.to_numeric(pd.Series(values), errors="coerce").astype(float)
    finite = finite[np.isfinite(finite)]
    if finite.empty:
        return (0.0, 1.0)
    lo, hi = float(finite.min()), float(finite.max())
    if lo == hi:
        pad = abs(lo) * 0.1 or 1.0
        return (lo - pad, hi + pad)
    return (lo, hi)


def _region_geojson(regions):
    """GeoJSON FeatureCollection with feature ids = region names."""
    return json.loads(regions.geometry.to_json())


def create_choropleth(regions, column, title, colorbar_title,
                      color_scale="YlOrRd", hover_format=":.2f", range_color=None):
    """
    Create a choropleth map of one per-region attribute.

    Args:
        regions: GeoDataFrame indexed by region name
        column: Attribute to colour by
        title: Figure title
        colorbar_title: Legend title
        color_scale: Plotly continuous colour scale
        hover_format: d3 format for the hover value
        range_color: Colour domain; computed from the values when None

    Returns:
        Plotly figure
    """
    geojson = _region_geojson(regions)

    plot_df = pd.DataFrame({
        "region": regions.index.astype(str),
        "value": pd.to_numeric(regions[column], errors="coerce").astype(float).to_numpy(),
    })
    valid = plot_df[plot_df["value"].notna()]
    missing = plot_df[plot_df["value"].isna()]

    if range_color is None:
        range_color = color_domain(valid["value"])

    if valid.empty:
        fig = go.Figure()
    else:
        fig = px.choropleth_map(
            valid,
            geojson=geojson,
            locations="region",
            color="value",
            hover_name="region",
            hover_data={"value": hover_format, "region": False},
            color_continuous_scale=color_scale,
            range_color=list(range_color),
            labels={"value": colorbar_title},
        )

    # Regions without a value are drawn grey so they stay visible
    if not missing.empty:
        fig.add_trace(go.Choroplethmap(
            geojson=geojson,
            locations=missing["region"],
            z=[0] * len(missing),
            colorscale=[[0, MISSING_COLOR], [1, MISSING_COLOR]],
            showscale=False,
            marker_opacity=0.6,
            text=missing["region"] + "<br>No data",
            hoverinfo="text",
            name="No data",
        ))

    fig.update_layout(
        title=title,
        map=dict(style="carto-positron", center=MAP_CENTER, zoom=MAP_ZOOM),
        coloraxis_colorbar=dict(title=colorbar_title, thickness=15, len=0.6),
        height=600,
        margin=dict(l=0, r=0, t=40, b=0),
    )
    return fig


def create_cases_map(regions, disease):
    return create_choropleth(
        regions, "observed",
        title=f"Observed {disease} Cases by Region",
        colorbar_title="Cases",
        color_scale="Blues",
        hover_format=":,",
    )


def create_risk_map(regions):
    """
    Posterior mean relative risk (1 = national average).
    """
    return create_choropleth(
        regions, "rr",
        title="Smoothed Relative Risk (BYM model, posterior mean)",
        colorbar_title="Relative<br>Risk",
        color_scale="RdYlBu_r",
    )


def create_exceedance_map(regions, threshold):
    """
    Probability that relative risk exceeds the threshold: the cluster map.
    """
    return create_choropleth(
        regions, "exceedance",
        title=f"Cluster Map: P(Relative Risk > {threshold:g})",
        colorbar_title="Exceedance<br>Probability",
        color_scale="Reds",
    )
