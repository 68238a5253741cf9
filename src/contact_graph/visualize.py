"""Interactive contact graph visualization using pyvis.

Generates a standalone HTML file. Node positions come from the layout
service and are fixed (physics off), so the page shows exactly what
``compute_layout`` produced. Nodes are colored by kind (person,
organization or discovered stub) and edges are sized by weight.
"""

import logging
import webbrowser
from pathlib import Path

from contact_graph.graph.edges import Edge
from contact_graph.graph.layout import compute_layout
from contact_graph.graph.models import ContactEntity

logger = logging.getLogger(__name__)

NODE_COLORS = {
    "person": "#42A5F5",        # blue
    "organization": "#66BB6A",  # green
    "discovered": "#FFA726",    # orange
}

# Explicit edges use a per-label palette; inferred ones stay muted
EDGE_PALETTE = [
    "#4CAF50",
    "#FF7043",
    "#42A5F5",
    "#AB47BC",
    "#26A69A",
    "#EC407A",
    "#FFA726",
    "#7E57C2",
    "#29B6F6",
    "#EF5350",
]
INFERRED_EDGE_COLOR = "#78909C"


def node_kind(entity: ContactEntity, discovery_tag: str = "auto-discovered") -> str:
    """Classify a contact for coloring."""
    if discovery_tag in entity.tags:
        return "discovered"
    if "Organization" in entity.tags or (entity.organization and entity.organization == entity.name):
        return "organization"
    return "person"


def _color_for_label(label: str, label_colors: dict[str, str]) -> str:
    if label not in label_colors:
        label_colors[label] = EDGE_PALETTE[len(label_colors) % len(EDGE_PALETTE)]
    return label_colors[label]


def _tooltip(entity: ContactEntity, degree: int) -> str:
    parts = [entity.name]
    if entity.title:
        parts.append(f"Title: {entity.title}")
    if entity.organization:
        parts.append(f"Organization: {entity.organization}")
    if entity.location:
        parts.append(f"Location: {entity.location}")
    if entity.tags:
        parts.append(f"Tags: {', '.join(entity.tags)}")
    parts.append(f"Connections: {degree}")
    return "\n".join(parts)


def generate_view(
    entities: list[ContactEntity],
    edges: list[Edge],
    output_path: Path,
    open_browser: bool = False,
    width: float = 1200.0,
    height: float = 800.0,
    discovery_tag: str = "auto-discovered",
) -> Path:
    """Write an interactive HTML view of the contact graph."""
    try:
        from pyvis.network import Network
    except ImportError as exc:
        raise ImportError(
            "pyvis is required for graph visualization.\nInstall it with: pip install pyvis"
        ) from exc

    positions = compute_layout(entities, edges, width=width, height=height)

    degrees: dict[str, int] = {e.id: 0 for e in entities}
    for edge in edges:
        degrees[edge.source] = degrees.get(edge.source, 0) + 1
        degrees[edge.target] = degrees.get(edge.target, 0) + 1

    net = Network(
        height=f"{int(height)}px",
        width="100%",
        directed=True,
        bgcolor="#1a1a2e",
        font_color="#e0e0e0",
    )
    net.toggle_physics(False)

    for entity in entities:
        degree = degrees.get(entity.id, 0)
        x, y = positions.get(entity.id, (width / 2, height / 2))
        net.add_node(
            entity.id,
            label=entity.name,
            title=_tooltip(entity, degree),
            color=NODE_COLORS[node_kind(entity, discovery_tag)],
            size=max(10, min(40, 10 + degree * 3)),
            shape="dot",
            x=x,
            y=y,
        )

    label_colors: dict[str, str] = {}
    for edge in edges:
        color = (
            INFERRED_EDGE_COLOR
            if edge.kind == "inferred"
            else _color_for_label(edge.label, label_colors)
        )
        net.add_edge(
            edge.source,
            edge.target,
            title=edge.label,
            label=edge.label,
            width=edge.weight * 1.5,
            color=color,
            dashes=edge.kind == "inferred",
            arrows="" if edge.kind == "inferred" else "to",
        )

    output_path.parent.mkdir(parents=True, exist_ok=True)
    net.write_html(str(output_path))
    logger.info(f"Contact graph view: {len(entities)} contacts, {len(edges)} edges → {output_path}")

    if open_browser:
        webbrowser.open(output_path.resolve().as_uri())
    return output_path
