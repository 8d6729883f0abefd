"""
Saudi Regional Disease Mapping Report - batch run

read data -> registry -> join -> expected counts -> neighbour graph
-> BYM fit -> relative risk and exceedance -> maps

Run with `python pipeline.py`; settings come from report_config.yaml.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple

import geopandas as gpd

from config import ReportConfig, load_config
from data_loader import load_boundaries, load_case_table
from data_processor import add_expected_counts, join_case_data
from model import PosteriorSummary, fit_bym
from neighbors import NeighborGraph, build_neighbor_graph, check_connectivity, write_adjacency_file
from regions import build_region_registry, relabel_boundaries
from risk import summarize_risk
from utils import build_summary_table
from visualizations import create_cases_map, create_exceedance_map, create_risk_map

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportResult:
    config: ReportConfig
    regions: gpd.GeoDataFrame
    graph: NeighborGraph
    posterior: PosteriorSummary
    isolated: Tuple[str, ...]


def run_pipeline(config: ReportConfig, fit: Callable = fit_bym) -> ReportResult:
    """
    Run every stage once, in order.

    Args:
        config: Report settings
        fit: Model fitting function (regions, graph, sampler, marginal_points)
            -> PosteriorSummary

    Returns:
        ReportResult
    """
    cases = load_case_table(
        str(config.cases_path), config.disease,
        config.region_column, config.population_column,
    )
    boundaries = load_boundaries(str(config.boundaries_path), config.boundaries_url)

    registry = build_region_registry(relabel_boundaries(boundaries))
    regions = add_expected_counts(join_case_data(registry, cases))

    graph = build_neighbor_graph(regions.geometry)
    isolated = check_connectivity(graph, list(regions.index))

    posterior = fit(regions, graph, config.sampler, config.marginal_points)
    regions = summarize_risk(regions, posterior, config.exceedance_threshold)

    return ReportResult(
        config=config,
        regions=regions,
        graph=graph,
        posterior=posterior,
        isolated=tuple(isolated),
    )


def write_report(result: ReportResult, output_dir: Optional[Path] = None) -> Path:
    """
    Write the three maps, the region table and the adjacency file.

    Returns:
        Output directory
    """
    out = Path(output_dir or result.config.output_dir)
    out.mkdir(parents=True, exist_ok=True)

    maps = {
        "cases_map.html": create_cases_map(result.regions, result.config.disease),
        "relative_risk_map.html": create_risk_map(result.regions),
        "exceedance_map.html": create_exceedance_map(
            result.regions, result.config.exceedance_threshold
        ),
    }
    for filename, fig in maps.items():
        fig.write_html(out / filename, include_plotlyjs="cdn")

    build_summary_table(result.regions).to_csv(out / "region_summary.csv", index=False)
    write_adjacency_file(result.graph, out / "saudi.adj")

    logger.info("Report written to %s", out)
    return out


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = load_config()
    result = run_pipeline(config)
    write_report(result)


if __name__ == "__main__":
    main()
