"""
Graph visualization component for Syllabus Engine
Draws the knowledge graph with Graphviz at the positions computed by the force layout
"""

import math
import graphviz
from typing import Dict

from backend.layout import ForceLayout, PinState

# Fill color by node status; anything unrecognised is drawn as available
STATUS_COLORS = {
    "completed": "#10b981",  # emerald-500
    "locked": "#64748b",     # slate-500
}
AVAILABLE_COLOR = "#3b82f6"  # blue-500
EDGE_COLOR = "#94a3b8"


def node_color(status: str) -> str:
    """Presentation contract for node fill color"""
    return STATUS_COLORS.get(status, AVAILABLE_COLOR)


def edge_width(value: float) -> float:
    """Stroke width for a link; zero or missing weight draws as 1"""
    return math.sqrt(value or 1)


def create_knowledge_graph(layout: ForceLayout) -> graphviz.Digraph:
    """
    Create a Graphviz diagram pinned to the layout's current positions

    Args:
        layout: Force layout that owns node positions

    Returns:
        Graphviz Digraph object using the neato engine
    """
    dot = graphviz.Digraph(
        comment='Course Knowledge Graph',
        engine='neato'  # honours pinned pos="x,y!" coordinates
    )

    # Positions are given in points; flip y because Graphviz grows upwards
    dot.attr('graph',
             inputscale='72',
             splines='line',
             overlap='true',
             bgcolor='transparent',
             fontname='Arial'
    )

    dot.attr('node',
             shape='circle',
             style='filled',
             fixedsize='true',
             width='0.28',
             label='',
             color='#ffffff',
             penwidth='1.5'
    )

    dot.attr('edge',
             color=EDGE_COLOR,
             arrowsize='0.6'
    )

    for node in layout.layout_nodes():
        dot.node(
            node.id,
            xlabel=node.label,
            fillcolor=node_color(node.status),
            tooltip=node.label,
            pos=f"{node.x:.2f},{-node.y:.2f}!",
            penwidth='3' if node.state == PinState.PINNED else '1.5',
            fontsize='10'
        )

    for source, target, _x1, _y1, _x2, _y2, value in layout.edge_segments():
        dot.edge(source, target, penwidth=f"{edge_width(value):.2f}")

    return dot


def status_legend() -> Dict[str, str]:
    """Label -> color for the legend under the graph"""
    return {
        "Completed": node_color("completed"),
        "Available": node_color("available"),
        "Locked": node_color("locked"),
    }
