# Unit tests for the knowledge graph drawing
import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.layout import ForceLayout
from backend.models import KnowledgeGraph, KnowledgeLink, KnowledgeNode
from components.graph_viz import (
    AVAILABLE_COLOR, create_knowledge_graph, edge_width, node_color, status_legend,
)


class TestGraphViz(unittest.TestCase):
    def test_status_colors(self):
        self.assertEqual(node_color("completed"), "#10b981")
        self.assertEqual(node_color("locked"), "#64748b")
        self.assertEqual(node_color("available"), AVAILABLE_COLOR)
        self.assertEqual(node_color("something else"), AVAILABLE_COLOR)
        self.assertEqual(list(status_legend()), ["Completed", "Available", "Locked"])

    def test_edge_width(self):
        self.assertEqual(edge_width(4), 2.0)
        self.assertEqual(edge_width(0), 1.0)

    def test_diagram_uses_layout_positions(self):
        graph = KnowledgeGraph(
            nodes=[KnowledgeNode(id="v", label="Velocity", status="completed"),
                   KnowledgeNode(id="a", label="Acceleration", status="locked")],
            links=[KnowledgeLink(source="v", target="a", value=4)],
        )
        layout = ForceLayout(graph, seed=0)
        layout.drag("v", 10.0, 20.0)
        layout.tick()

        dot = create_knowledge_graph(layout)

        self.assertEqual(dot.engine, "neato")
        self.assertIn('pos="10.00,-20.00!"', dot.source)
        self.assertIn("#10b981", dot.source)
        self.assertIn("#64748b", dot.source)
        self.assertRegex(dot.source, r'v -> a \[penwidth="?2\.00"?\]')


if __name__ == "__main__":
    unittest.main()
