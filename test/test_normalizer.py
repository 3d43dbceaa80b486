# Unit tests for the response normalizer
import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.errors import MalformedResponse
from backend.normalizer import (
    safe_parse_json, strip_code_fences, lint,
    normalize_structure, normalize_graph, normalize_exam,
)
from backend.response_schemas import GRAPH_SCHEMA


class TestSafeParseJson(unittest.TestCase):
    def test_plain_json(self):
        self.assertEqual(safe_parse_json('{"a": 1}'), {"a": 1})

    def test_fenced_json_with_language_tag(self):
        text = '```json\n{"title": "Physics", "modules": []}\n```'
        self.assertEqual(safe_parse_json(text), {"title": "Physics", "modules": []})

    def test_fenced_json_without_tag(self):
        self.assertEqual(safe_parse_json('```\n[1, 2, 3]\n```'), [1, 2, 3])

    def test_fenced_json_surrounded_by_whitespace(self):
        self.assertEqual(safe_parse_json('  \n```json {"ok": true} ```  \n'), {"ok": True})

    def test_garbage_raises_malformed(self):
        with self.assertRaises(MalformedResponse) as context:
            safe_parse_json("Sorry, I can't help with that.")
        self.assertEqual(context.exception.raw_text, "Sorry, I can't help with that.")

    def test_fenced_garbage_raises_malformed(self):
        with self.assertRaises(MalformedResponse):
            safe_parse_json("```json\n{not: valid}\n```")

    def test_empty_and_none_raise_malformed(self):
        for text in (None, "", "   "):
            with self.assertRaises(MalformedResponse):
                safe_parse_json(text)

    def test_strict_mode_rejects_fenced_json(self):
        with self.assertRaises(MalformedResponse):
            safe_parse_json('```json\n{"a": 1}\n```', repair_attempts=0)

    def test_strip_code_fences(self):
        self.assertEqual(strip_code_fences('```python\nx = 1\n```'), "x = 1")


class TestNormalizeStructure(unittest.TestCase):
    def test_defaults_for_missing_fields(self):
        structure = normalize_structure({})
        self.assertEqual(structure.title, "Untitled Course")
        self.assertEqual(structure.description, "")
        self.assertEqual(structure.modules, [])

    def test_non_list_modules_coerced_to_empty(self):
        structure = normalize_structure({"title": "Biology", "modules": "three modules"})
        self.assertEqual(structure.title, "Biology")
        self.assertEqual(structure.modules, [])

    def test_module_fields_shape_checked(self):
        structure = normalize_structure({
            "title": "Chemistry",
            "modules": [
                {"id": "m1", "title": "Atoms", "topics": ["Protons", 7, "Electrons"],
                 "learningObjectives": "know atoms"},
                "not a module",
                {"title": "Bonds", "learning_objectives": ["Explain ionic bonds"]},
            ],
        })
        self.assertEqual(len(structure.modules), 2)
        atoms, bonds = structure.modules
        self.assertEqual(atoms.topics, ["Protons", "Electrons"])
        self.assertEqual(atoms.learning_objectives, [])
        self.assertEqual(bonds.id, "module-3")
        self.assertEqual(bonds.learning_objectives, ["Explain ionic bonds"])

    def test_duplicate_module_ids_made_unique(self):
        structure = normalize_structure({"modules": [{"id": "m", "title": "A"}, {"id": "m", "title": "B"}]})
        self.assertEqual(len({m.id for m in structure.modules}), 2)

    def test_non_object_raises(self):
        with self.assertRaises(MalformedResponse):
            normalize_structure(["not", "an", "object"])


class TestNormalizeGraph(unittest.TestCase):
    def test_unknown_endpoints_dropped(self):
        graph = normalize_graph({
            "nodes": [{"id": "a", "label": "A"}, {"id": "b", "label": "B"}],
            "links": [
                {"source": "a", "target": "b"},
                {"source": "a", "target": "ghost"},
                {"source": "phantom", "target": "b"},
            ],
        })
        self.assertEqual([(l.source, l.target) for l in graph.links], [("a", "b")])
        ids = set(graph.node_ids())
        for link in graph.links:
            self.assertIn(link.source, ids)
            self.assertIn(link.target, ids)

    def test_self_links_and_duplicates_pass_through(self):
        graph = normalize_graph({
            "nodes": [{"id": "a"}, {"id": "b"}],
            "links": [{"source": "a", "target": "a"}, {"source": "a", "target": "b"},
                      {"source": "a", "target": "b"}],
        })
        self.assertEqual(len(graph.links), 3)

    def test_node_defaults(self):
        graph = normalize_graph({"nodes": [{"id": "x", "status": "mystery", "group": "two"}]})
        node = graph.nodes[0]
        self.assertEqual(node.label, "x")
        self.assertEqual(node.status, "available")
        self.assertEqual(node.group, 0)

    def test_link_value_defaults_to_one(self):
        graph = normalize_graph({
            "nodes": [{"id": "a"}, {"id": "b"}],
            "links": [{"source": "a", "target": "b", "value": -4},
                      {"source": "b", "target": "a"}],
        })
        self.assertEqual([l.value for l in graph.links], [1.0, 1.0])

    def test_unexpected_shapes_give_empty_graph(self):
        self.assertTrue(normalize_graph(None).is_empty)
        self.assertTrue(normalize_graph({"nodes": "lots", "links": 5}).is_empty)

    def test_same_payload_normalizes_to_equal_graphs(self):
        payload = {
            "nodes": [{"id": "a", "label": "A", "group": 1, "status": "completed"},
                      {"id": "b", "label": "B", "group": 1, "status": "locked"}],
            "links": [{"source": "a", "target": "b", "value": 2}],
        }
        self.assertEqual(normalize_graph(payload), normalize_graph(payload))

    def test_lint_reports_schema_errors(self):
        errors = lint({"nodes": [{"id": "a", "status": "done"}]}, GRAPH_SCHEMA)
        self.assertTrue(errors)
        self.assertEqual(lint({"nodes": [], "links": []}, GRAPH_SCHEMA), [])


class TestNormalizeExam(unittest.TestCase):
    def test_accepts_list_or_wrapped_object(self):
        question = {"id": 1, "question": "2+2?", "options": ["3", "4"], "correctAnswerIndex": 1,
                    "explanation": "Arithmetic"}
        self.assertEqual(len(normalize_exam([question])), 1)
        self.assertEqual(len(normalize_exam({"questions": [question]})), 1)

    def test_drops_unusable_questions(self):
        questions = normalize_exam([
            {"id": 1, "question": "No options", "options": [], "correctAnswerIndex": 0},
            {"id": 2, "question": "Bad index", "options": ["a"], "correctAnswerIndex": 3},
            {"id": 3, "question": "Fine", "options": ["a", "b"], "correctAnswerIndex": 0},
        ])
        self.assertEqual([q.id for q in questions], [3])
        self.assertEqual(questions[0].explanation, "")

    def test_numeric_option_keeps_answer_position(self):
        questions = normalize_exam([
            {"id": 1, "question": "When did the decade start?", "options": ["1990", 2000, "2010"],
             "correctAnswerIndex": 1},
        ])
        self.assertEqual(questions[0].options, ["1990", "2000", "2010"])
        self.assertEqual(questions[0].options[questions[0].correct_answer_index], "2000")

    def test_structured_option_drops_question(self):
        questions = normalize_exam([
            {"id": 1, "question": "Pick one", "options": ["a", {"text": "b"}, "c"], "correctAnswerIndex": 2},
        ])
        self.assertEqual(questions, [])

    def test_missing_ids_are_unique(self):
        questions = normalize_exam([
            {"question": "A", "options": ["x", "y"], "correctAnswerIndex": 0},
            {"question": "B", "options": ["x", "y"], "correctAnswerIndex": 1},
        ])
        self.assertEqual(len({q.id for q in questions}), 2)

    def test_non_sequence_gives_no_questions(self):
        self.assertEqual(normalize_exam("five questions"), [])


if __name__ == "__main__":
    unittest.main()
