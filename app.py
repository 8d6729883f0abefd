"""
Saudi Regional Disease Mapping Report

Research Question:
    Which Saudi administrative regions carry a higher disease risk than the
    national average, once small-number noise is smoothed out with a
    Bayesian spatial (BYM) model?
"""

import requests
import streamlit as st

from config import load_config
from errors import DiseaseMappingError
from pipeline import run_pipeline
from utils import build_summary_table, format_number, format_probability, generate_key_insights
from visualizations import create_cases_map, create_exceedance_map, create_risk_map

# ──────────────────────────────────────────────────────────────────
# PAGE CONFIG  (must be first Streamlit call)
# ──────────────────────────────────────────────────────────────────
st.set_page_config(
    page_title="Saudi Disease Map",
    page_icon="🗺️",
    layout="wide",
    initial_sidebar_state="expanded",
)

# ──────────────────────────────────────────────────────────────────
# CSS
# ──────────────────────────────────────────────────────────────────
st.markdown("""
<style>
    .banner-title {
        font-size: 2.6rem;
        font-weight: 900;
        color: #1a1a2e;
        text-align: center;
        margin-bottom: 0.1rem;
    }
    .banner-sub {
        font-size: 1.1rem;
        color: #6c757d;
        text-align: center;
        margin-bottom: 1.8rem;
    }
    div[data-testid="metric-container"] {
        background: #f8f9fa;
        border-radius: 10px;
        border-left: 5px solid #c0392b;
        padding: 0.8rem 1rem;
    }
</style>
""", unsafe_allow_html=True)


# ──────────────────────────────────────────────────────────────────
# MODEL RUN  (cached, runs once per session)
# ──────────────────────────────────────────────────────────────────

@st.cache_data(show_spinner=False)
def load_report():
    """Fit the model once and keep the result for the session."""
    return run_pipeline(load_config())


# ──────────────────────────────────────────────────────────────────
# MAIN
# ──────────────────────────────────────────────────────────────────

def main():

    st.markdown(
        '<h1 class="banner-title">🗺️ Saudi Regional Disease Map</h1>',
        unsafe_allow_html=True,
    )
    st.markdown(
        '<p class="banner-sub">'
        "Bayesian spatial smoothing of regional case counts (Besag-York-Mollié model)"
        "</p>",
        unsafe_allow_html=True,
    )

    # ── Load + fit ──────────────────────────────────────────────
    with st.spinner("⏳ Fitting the spatial model. First run can take a few minutes…"):
        try:
            result = load_report()
        except requests.exceptions.RequestException as exc:
            st.error(f"Network error downloading region boundaries: {exc}")
            st.stop()
        except FileNotFoundError as exc:
            st.error(f"Data file not found: {exc}")
            st.stop()
        except DiseaseMappingError as exc:
            st.error(f"{type(exc).__name__}: {exc}")
            st.stop()

    config = result.config
    regions = result.regions
    threshold = config.exceedance_threshold

    # ── Sidebar ─────────────────────────────────────────────────
    with st.sidebar:
        st.title("⚙️ Report Settings")
        st.markdown("---")
        st.caption(f"Disease: **{config.disease}**")
        st.caption(f"Exceedance threshold: **RR > {threshold:g}**")
        st.caption(
            f"Sampler: {config.sampler.chains} chains × "
            f"{config.sampler.iter_sampling:,} draws"
        )
        st.markdown("---")
        st.info(
            "The threshold is set in **report_config.yaml**. The report "
            "narrative cites 1.1 while the published maps used 1.18; "
            "confirm the intended value before circulating results."
        )

    # ── Tabs ────────────────────────────────────────────────────
    tab1, tab2, tab3, tab4, tab5 = st.tabs([
        "📈 Overview",
        "🦠 Cases",
        "📊 Relative Risk",
        "🔥 Cluster Map",
        "💡 Insights",
    ])

    with tab1:
        st.header("Overview")

        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Observed Cases", format_number(regions["observed"].sum()))
        c2.metric("Population", format_number(regions["population"].sum()))
        c3.metric("Regions Estimated", f"{int(regions['rr'].notna().sum())} / {len(regions)}")
        c4.metric("Max P(RR > θ)", format_probability(regions["exceedance"].max()))

        if result.isolated:
            st.warning(
                f"⚠️ Regions without neighbours (no spatial smoothing): "
                f"{', '.join(result.isolated)}"
            )
        missing = regions.index[regions["observed"].isna()].tolist()
        if missing:
            st.warning(f"⚠️ No case data for: {', '.join(missing)}")

        st.subheader("Region Table")
        table = build_summary_table(regions).rename(columns={
            "region":     "Region",
            "population": "Population",
            "observed":   "Observed",
            "expected":   "Expected",
            "raw_rr":     "SIR",
            "rr":         "Relative Risk",
            "exceedance": f"P(RR > {threshold:g})",
            "category":   "Evidence",
        }).drop(columns=["region_id"])
        st.dataframe(table, hide_index=True, use_container_width=True)

    with tab2:
        st.header(f"Observed {config.disease} Cases")
        st.plotly_chart(create_cases_map(regions, config.disease), use_container_width=True)

    with tab3:
        st.header("Smoothed Relative Risk")
        st.markdown(
            "Posterior mean relative risk. **1.0** is the national average; "
            "values above 1 mean more cases than expected for the population."
        )
        st.plotly_chart(create_risk_map(regions), use_container_width=True)

    with tab4:
        st.header("Cluster Map")
        st.markdown(
            f"Probability that a region's relative risk exceeds **{threshold:g}**. "
            "Values near 1 mark likely high-risk clusters."
        )
        st.plotly_chart(create_exceedance_map(regions, threshold), use_container_width=True)

    with tab5:
        st.header("Key Insights")
        insights = generate_key_insights(regions, threshold, result.isolated)

        if insights["concerning"]:
            st.subheader("⚠️ Areas of Concern")
            for m in insights["concerning"]:
                st.warning(m)
        if insights["positive"]:
            st.subheader("✅ Positive Findings")
            for m in insights["positive"]:
                st.success(m)
        if insights["neutral"]:
            st.subheader("ℹ️ Context")
            for m in insights["neutral"]:
                st.info(m)


if __name__ == "__main__":
    main()
