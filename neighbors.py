"""
Spatial Neighbour Graph for the Saudi disease map
Polygon adjacency, connectivity checks and the INLA-style graph file format
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import geopandas as gpd
import numpy as np
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import connected_components as _csgraph_components

from errors import GraphFormatError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NeighborGraph:
    """
    Undirected adjacency over regions in registry order.

    neighbors[i] holds the 0-based indices adjacent to region i, ascending.
    """

    neighbors: Tuple[Tuple[int, ...], ...]

    @property
    def n_regions(self) -> int:
        return len(self.neighbors)

    @property
    def n_edges(self) -> int:
        return sum(len(nbrs) for nbrs in self.neighbors) // 2

    @classmethod
    def from_adjacency(cls, adjacency: Dict[int, Sequence[int]], n_regions: int) -> "NeighborGraph":
        """Build a graph from index -> neighbours, checking range and symmetry."""
        sets: List[set] = [set() for _ in range(n_regions)]
        for i, nbrs in adjacency.items():
            for j in nbrs:
                if not (0 <= i < n_regions and 0 <= j < n_regions):
                    raise GraphFormatError(f"Neighbour index out of range: {i} -> {j}")
                if i == j:
                    raise GraphFormatError(f"Region {i} lists itself as a neighbour")
                sets[i].add(j)
        for i, nbrs in enumerate(sets):
            for j in nbrs:
                if i not in sets[j]:
                    raise GraphFormatError(f"Asymmetric adjacency: {i} -> {j} but not {j} -> {i}")
        return cls(tuple(tuple(sorted(s)) for s in sets))


def build_neighbor_graph(geometries) -> NeighborGraph:
    """
    Regions are neighbours iff their polygons intersect (touch or overlap).

    Args:
        geometries: GeoSeries (or GeoDataFrame) in registry order

    Returns:
        NeighborGraph
    """
    geoms = geometries.geometry if isinstance(geometries, gpd.GeoDataFrame) else geometries
    geoms = gpd.GeoSeries(geoms.values, crs=geoms.crs)

    # Candidate pairs from the spatial index, confirmed by the exact predicate
    left, right = geoms.sindex.query(geoms, predicate="intersects")

    adjacency: Dict[int, set] = {i: set() for i in range(len(geoms))}
    for i, j in zip(left.tolist(), right.tolist()):
        if i != j:
            adjacency[i].add(j)
            adjacency[j].add(i)

    graph = NeighborGraph.from_adjacency(adjacency, len(geoms))
    logger.info("Neighbour graph: %d regions, %d edges", graph.n_regions, graph.n_edges)
    return graph


def connected_components(graph: NeighborGraph) -> List[List[int]]:
    """Connected components as sorted index lists, ordered by smallest member."""
    n = graph.n_regions
    if n == 0:
        return []
    rows = [i for i, nbrs in enumerate(graph.neighbors) for _ in nbrs]
    cols = [j for nbrs in graph.neighbors for j in nbrs]
    matrix = coo_matrix((np.ones(len(rows)), (rows, cols)), shape=(n, n))
    _, labels = _csgraph_components(matrix, directed=False)

    groups: Dict[int, List[int]] = {}
    for index, label in enumerate(labels.tolist()):
        groups.setdefault(label, []).append(index)
    return sorted(groups.values(), key=lambda members: members[0])


def isolated_regions(graph: NeighborGraph) -> List[int]:
    return [i for i, nbrs in enumerate(graph.neighbors) if not nbrs]


def check_connectivity(graph: NeighborGraph, names: Sequence[str]) -> List[str]:
    """
    Warn when the graph is disconnected.

    Isolated regions get no spatial smoothing; their estimate reduces to
    the non-spatial (iid) one.

    Returns:
        Names of isolated regions
    """
    components = connected_components(graph)
    isolated = [names[i] for i in isolated_regions(graph)]
    if len(components) > 1:
        logger.warning(
            "Neighbour graph has %d connected components; sizes %s",
            len(components), [len(c) for c in components],
        )
    if isolated:
        logger.warning("Regions with no neighbours (no spatial smoothing): %s", isolated)
    return isolated


def edge_list(graph: NeighborGraph) -> Tuple[List[int], List[int]]:
    """1-based (node1, node2) pairs with node1 < node2."""
    node1, node2 = [], []
    for i, nbrs in enumerate(graph.neighbors):
        for j in nbrs:
            if i < j:
                node1.append(i + 1)
                node2.append(j + 1)
    return node1, node2


def to_adjacency_text(graph: NeighborGraph) -> str:
    """
    Serialise in the INLA graph-file format.

    First line is the region count, then one line per region:
    <node> <number of neighbours> <neighbour ids...>, all 1-based.
    """
    lines = [str(graph.n_regions)]
    for i, nbrs in enumerate(graph.neighbors):
        fields = [i + 1, len(nbrs)] + [j + 1 for j in nbrs]
        lines.append(" ".join(str(f) for f in fields))
    return "\n".join(lines) + "\n"


def parse_adjacency_text(text: str) -> NeighborGraph:
    """Parse the INLA graph-file format back into a NeighborGraph."""
    lines = [line.split() for line in text.splitlines() if line.strip()]
    if not lines:
        raise GraphFormatError("Empty adjacency graph")

    try:
        rows = [[int(token) for token in line] for line in lines]
    except ValueError as exc:
        raise GraphFormatError(f"Non-integer token in adjacency graph: {exc}") from exc

    header = rows[0]
    if len(header) != 1 or header[0] < 0:
        raise GraphFormatError(f"Bad header line: {lines[0]}")
    n = header[0]
    if len(rows) - 1 != n:
        raise GraphFormatError(f"Header says {n} regions but {len(rows) - 1} lines follow")

    adjacency: Dict[int, List[int]] = {}
    for row in rows[1:]:
        if len(row) < 2:
            raise GraphFormatError(f"Line too short: {row}")
        node, count, nbrs = row[0], row[1], row[2:]
        if count != len(nbrs):
            raise GraphFormatError(f"Region {node} declares {count} neighbours, lists {len(nbrs)}")
        if not 1 <= node <= n or (node - 1) in adjacency:
            raise GraphFormatError(f"Bad or repeated region id {node}")
        adjacency[node - 1] = [j - 1 for j in nbrs]

    return NeighborGraph.from_adjacency(adjacency, n)


def write_adjacency_file(graph: NeighborGraph, path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(to_adjacency_text(graph))
    return path


def read_adjacency_file(path) -> NeighborGraph:
    return parse_adjacency_text(Path(path).read_text())
