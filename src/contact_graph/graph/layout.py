"""Graph positioning: force-directed coordinates for the contact graph.

Consumes contacts and derived edges, returns per-contact 2D positions
inside a width x height canvas. Edge weight acts as spring strength, so
explicit relationships pull harder than shared-organization ones.
"""

import logging
from typing import Iterable

import networkx as nx

from contact_graph.graph.edges import Edge
from contact_graph.graph.models import ContactEntity

logger = logging.getLogger(__name__)

# Keep nodes off the canvas border
MARGIN = 40.0


def compute_layout(
    entities: Iterable[ContactEntity],
    edges: Iterable[Edge],
    width: float = 1200.0,
    height: float = 800.0,
    iterations: int = 300,
    seed: int | None = None,
) -> dict[str, tuple[float, float]]:
    """Return ``{contact_id: (x, y)}`` with every point inside the canvas."""
    graph = nx.Graph()
    for entity in entities:
        graph.add_node(entity.id)
    for edge in edges:
        if edge.source == edge.target:
            continue
        # Parallel explicit + inferred edges collapse into one stronger spring
        existing = graph.get_edge_data(edge.source, edge.target)
        weight = edge.weight + (existing["weight"] if existing else 0)
        graph.add_edge(edge.source, edge.target, weight=weight)

    if graph.number_of_nodes() == 0:
        return {}
    if graph.number_of_nodes() == 1:
        (only,) = graph.nodes
        return {only: (width / 2, height / 2)}

    raw = nx.spring_layout(graph, weight="weight", iterations=iterations, seed=seed)
    return _fit_to_canvas(raw, width, height)


def _fit_to_canvas(
    raw: dict, width: float, height: float
) -> dict[str, tuple[float, float]]:
    xs = [float(p[0]) for p in raw.values()]
    ys = [float(p[1]) for p in raw.values()]
    min_x, max_x = min(xs), max(xs)
    min_y, max_y = min(ys), max(ys)
    margin_x = min(MARGIN, width / 4)
    margin_y = min(MARGIN, height / 4)
    usable_w = width - 2 * margin_x
    usable_h = height - 2 * margin_y

    def scale(value: float, lo: float, hi: float, offset: float, span: float) -> float:
        if hi - lo == 0:
            return offset + span / 2
        return offset + (value - lo) / (hi - lo) * span

    positions = {
        node: (
            scale(float(p[0]), min_x, max_x, margin_x, usable_w),
            scale(float(p[1]), min_y, max_y, margin_y, usable_h),
        )
        for node, p in raw.items()
    }
    logger.debug(f"Laid out {len(positions)} contacts on a {width:.0f}x{height:.0f} canvas")
    return positions
