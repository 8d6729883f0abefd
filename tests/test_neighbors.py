"""
Tests for the spatial neighbour graph and the adjacency file format
"""

import logging

import geopandas as gpd
import pytest
from shapely.geometry import box

from errors import GraphFormatError
from neighbors import (
    NeighborGraph,
    build_neighbor_graph,
    check_connectivity,
    connected_components,
    edge_list,
    isolated_regions,
    parse_adjacency_text,
    read_adjacency_file,
    to_adjacency_text,
    write_adjacency_file,
)


class TestBuildNeighborGraph:

    def test_shared_edge(self, two_squares):
        graph = build_neighbor_graph(two_squares.geometry)
        assert graph.neighbors == ((1,), (0,))

    def test_corner_contact_counts(self):
        geoms = gpd.GeoSeries([box(0, 0, 1, 1), box(1, 1, 2, 2)])
        assert build_neighbor_graph(geoms).neighbors == ((1,), (0,))

    def test_overlap_counts(self):
        geoms = gpd.GeoSeries([box(0, 0, 2, 2), box(1, 1, 3, 3)])
        assert build_neighbor_graph(geoms).neighbors == ((1,), (0,))

    def test_grid_is_symmetric_and_sorted(self, grid_3x3):
        graph = build_neighbor_graph(grid_3x3)

        for i, nbrs in enumerate(graph.neighbors):
            assert list(nbrs) == sorted(nbrs)
            assert i not in nbrs
            for j in nbrs:
                assert i in graph.neighbors[j]

        # centre touches every other cell, corners touch three
        assert graph.neighbors[4] == (0, 1, 2, 3, 5, 6, 7, 8)
        assert graph.neighbors[0] == (1, 3, 4)
        assert graph.n_edges == 20

    def test_disjoint_region_is_isolated(self, three_regions_one_isolated):
        graph = build_neighbor_graph(three_regions_one_isolated.geometry)
        assert graph.neighbors == ((1,), (0,), ())
        assert isolated_regions(graph) == [2]


class TestConnectivity:

    def test_components(self, three_regions_one_isolated):
        graph = build_neighbor_graph(three_regions_one_isolated.geometry)
        assert connected_components(graph) == [[0, 1], [2]]

    def test_connected_graph_has_no_warning(self, grid_3x3, caplog):
        graph = build_neighbor_graph(grid_3x3.geometry)
        with caplog.at_level(logging.WARNING):
            isolated = check_connectivity(graph, list(grid_3x3.index))
        assert isolated == []
        assert caplog.text == ""

    def test_isolated_region_is_surfaced(self, three_regions_one_isolated, caplog):
        graph = build_neighbor_graph(three_regions_one_isolated.geometry)
        with caplog.at_level(logging.WARNING):
            isolated = check_connectivity(graph, list(three_regions_one_isolated.index))
        assert isolated == ["C"]
        assert "2 connected components" in caplog.text
        assert "C" in caplog.text


class TestAdjacencyFormat:

    def test_text_layout(self, three_regions_one_isolated):
        graph = build_neighbor_graph(three_regions_one_isolated.geometry)
        assert to_adjacency_text(graph) == "3\n1 1 2\n2 1 1\n3 0\n"

    def test_round_trip(self, grid_3x3):
        graph = build_neighbor_graph(grid_3x3.geometry)
        assert parse_adjacency_text(to_adjacency_text(graph)) == graph

    def test_file_round_trip(self, grid_3x3, tmp_path):
        graph = build_neighbor_graph(grid_3x3.geometry)
        path = write_adjacency_file(graph, tmp_path / "graphs" / "grid.adj")
        assert read_adjacency_file(path) == graph

    def test_lines_may_come_in_any_order(self):
        graph = parse_adjacency_text("2\n2 1 1\n1 1 2\n")
        assert graph.neighbors == ((1,), (0,))

    @pytest.mark.parametrize("text, message", [
        ("", "Empty"),
        ("3\n1 1 2\n2 1 1\n", "Header says 3"),
        ("2\n1 2 2\n2 1 1\n", "declares 2"),
        ("2\n1 1 2\n2 0\n", "Asymmetric"),
        ("2\n1 1 x\n2 1 1\n", "Non-integer"),
        ("2\n1 1 3\n2 0\n", "out of range"),
        ("2\n1 1 1\n2 0\n", "itself"),
        ("2\n1 0\n1 0\n", "repeated"),
    ])
    def test_malformed_text_is_rejected(self, text, message):
        with pytest.raises(GraphFormatError, match=message):
            parse_adjacency_text(text)


class TestEdgeList:

    def test_edges_are_one_based_and_unique(self, grid_3x3):
        graph = build_neighbor_graph(grid_3x3.geometry)
        node1, node2 = edge_list(graph)

        assert len(node1) == graph.n_edges
        assert all(a < b for a, b in zip(node1, node2))
        assert min(node1) == 1 and max(node2) == 9

    def test_from_adjacency_rejects_asymmetry(self):
        with pytest.raises(GraphFormatError):
            NeighborGraph.from_adjacency({0: [1], 1: []}, 2)
