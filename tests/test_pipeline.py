"""
End-to-end test of the batch report with a fake model fit
"""

import numpy as np
import pandas as pd
import pytest

from config import ReportConfig, SamplerSettings
from model import summarize_draws
from neighbors import read_adjacency_file
from pipeline import run_pipeline, write_report
from regions import CANONICAL_REGIONS


def fake_fit(regions, graph, sampler, marginal_points):
    rng = np.random.default_rng(sampler.seed)
    draws = rng.lognormal(0.0, 0.15, size=(500, len(regions)))
    return summarize_draws(list(regions.index), draws, marginal_points)


@pytest.fixture
def report_config(tmp_path, saudi_boundaries):
    boundaries_path = tmp_path / "adm1.geojson"
    boundaries_path.write_text(saudi_boundaries.to_json())

    rows = [
        ("Riyadh", 8591748, 4120), ("Makkah", 8021463, 3654),
        ("Eastern Province", 5125254, 2571), ("Al-Madinah", 2137983, 902),
        ("Asir", 2024285, 811), ("Jizan", 1404997, 498),
        ("Al Qassim", 1336179, 655), ("Tabuk", 886036, 371),
        ("Ha'il", 746406, 330), ("Najran", 592300, 231),
        ("Al Jouf", 595822, 287), ("Northern Borders", 373577, 176),
        # Al Bahah deliberately absent
    ]
    cases_path = tmp_path / "cases.csv"
    pd.DataFrame(rows, columns=["Region", "Population", "Cancer"]).to_csv(cases_path, index=False)

    return ReportConfig(
        cases_path=cases_path,
        boundaries_path=boundaries_path,
        boundaries_url="https://unused.example",
        disease="Cancer",
        exceedance_threshold=1.18,
        output_dir=tmp_path / "output",
        marginal_points=60,
        sampler=SamplerSettings(seed=11),
    )


def test_run_pipeline(report_config):
    result = run_pipeline(report_config, fit=fake_fit)
    regions = result.regions

    assert list(regions.index) == list(CANONICAL_REGIONS)
    assert result.graph.n_regions == 13
    assert result.isolated == ()

    bahah = regions.loc["Al Bahah"]
    for column in ["observed", "population", "expected", "raw_rr", "rr", "exceedance"]:
        assert pd.isna(bahah[column])

    estimated = regions.drop(index="Al Bahah")
    assert estimated["rr"].notna().all()
    assert ((estimated["exceedance"] >= 0) & (estimated["exceedance"] <= 1)).all()
    assert float(estimated["expected"].sum()) == pytest.approx(float(estimated["observed"].sum()))


def test_write_report(report_config):
    result = run_pipeline(report_config, fit=fake_fit)
    out = write_report(result)

    for name in ["cases_map.html", "relative_risk_map.html", "exceedance_map.html"]:
        assert (out / name).stat().st_size > 0

    summary = pd.read_csv(out / "region_summary.csv")
    assert len(summary) == 13
    assert {"region", "rr", "exceedance", "category"} <= set(summary.columns)

    assert read_adjacency_file(out / "saudi.adj") == result.graph
