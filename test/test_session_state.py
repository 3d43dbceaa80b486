# Unit tests for the session state transitions
import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.errors import IncompleteExam
from backend.models import (
    ChatMessage, ContentDepth, CourseModule, CourseStructure,
    ExamQuestion, ImageAttachment, KnowledgeGraph, KnowledgeNode, LessonContent,
)
from backend.session_state import (
    create_initial_state, apply_event, begin_request, is_current, get_active_module, lesson_text,
    DocumentLoaded, StructureLoaded, IngestFailed, ModuleSelected, DepthChanged,
    LessonLoaded, GraphLoaded, ExamLoaded, AnswerSelected, ExamSubmitted, ExamClosed,
    ChatMessageAdded, ChatImageAttached, ChatImageCleared, SessionReset,
)


STRUCTURE = CourseStructure(
    title="Intro to Physics",
    modules=[
        CourseModule(id="m1", title="Kinematics", topics=["Velocity"]),
        CourseModule(id="m2", title="Dynamics", topics=["Forces"]),
    ],
)


def loaded_state():
    state = create_initial_state()
    state = apply_event(state, DocumentLoaded(document="JVBERi0=", name="physics.pdf", digest="abc123"))
    return apply_event(state, StructureLoaded(structure=STRUCTURE))


def lesson(module_id, depth, text):
    return LessonContent(module_id=module_id, depth=depth, text=text)


def chat(message_id, content, role="user"):
    return ChatMessage(id=message_id, role=role, content=content, timestamp=0.0)


def questions(count=5):
    return [ExamQuestion(id=i, question=f"Q{i}", options=["a", "b", "c"], correct_answer_index=0)
            for i in range(count)]


class TestIngest(unittest.TestCase):
    def test_initial_state(self):
        state = create_initial_state()
        self.assertIsNone(state["structure"])
        self.assertEqual(state["depth"], ContentDepth.STANDARD)
        self.assertEqual(state["chat_history"], [])
        self.assertIsNone(get_active_module(state))

    def test_structure_loaded_resets_selection(self):
        state = apply_event(loaded_state(), ModuleSelected(module_id="m1"))
        replacement = CourseStructure(title="Chemistry", modules=[CourseModule(id="c1", title="Atoms")])
        state = apply_event(state, StructureLoaded(structure=replacement))
        self.assertEqual(state["structure"].title, "Chemistry")
        self.assertIsNone(state["active_module_id"])
        self.assertIsNone(state["lesson"])

    def test_ingest_failure_clears_document(self):
        state = create_initial_state()
        state = apply_event(state, DocumentLoaded(document="JVBERi0=", name="bad.pdf", digest="bad"))
        state = apply_event(state, IngestFailed(message="Failed to process syllabus. Please try again."))
        self.assertIsNone(state["document"])
        self.assertIsNone(state["structure"])
        self.assertEqual(state["ingest_error"], "Failed to process syllabus. Please try again.")

    def test_new_document_discards_pending_graph(self):
        state = loaded_state()
        state, graph_token = begin_request(state, "graph")
        state = apply_event(state, DocumentLoaded(document="JVBERi0x", name="second.pdf", digest="def456"))
        graph = KnowledgeGraph(nodes=[KnowledgeNode(id="a", label="A")])
        state = apply_event(state, GraphLoaded(token=graph_token, graph=graph))
        self.assertIsNone(state["graph"])

    def test_current_graph_is_stored(self):
        state, token = begin_request(loaded_state(), "graph")
        graph = KnowledgeGraph(nodes=[KnowledgeNode(id="a", label="A")])
        state = apply_event(state, GraphLoaded(token=token, graph=graph))
        self.assertEqual(state["graph"], graph)


class TestLessonRequests(unittest.TestCase):
    def test_unknown_module_rejected(self):
        with self.assertRaises(ValueError):
            apply_event(loaded_state(), ModuleSelected(module_id="missing"))

    def test_last_depth_change_wins(self):
        state = apply_event(loaded_state(), ModuleSelected(module_id="m1"))
        state = apply_event(state, DepthChanged(depth=ContentDepth.SUMMARY))
        state, summary_token = begin_request(state, "lesson")
        state = apply_event(state, DepthChanged(depth=ContentDepth.DEEP_DIVE))
        state, deep_token = begin_request(state, "lesson")

        # The Deep Dive reply lands first, the Summary reply afterwards
        state = apply_event(state, LessonLoaded(token=deep_token,
                                                lesson=lesson("m1", ContentDepth.DEEP_DIVE, "deep")))
        state = apply_event(state, LessonLoaded(token=summary_token,
                                                lesson=lesson("m1", ContentDepth.SUMMARY, "short")))

        self.assertEqual(state["depth"], ContentDepth.DEEP_DIVE)
        self.assertEqual(lesson_text(state), "deep")
        self.assertFalse(is_current(state, "lesson", summary_token))

    def test_module_switch_discards_old_lesson(self):
        state = apply_event(loaded_state(), ModuleSelected(module_id="m1"))
        state, token = begin_request(state, "lesson")
        state = apply_event(state, ModuleSelected(module_id="m2"))
        state = apply_event(state, LessonLoaded(token=token, lesson=lesson("m1", ContentDepth.STANDARD, "old")))
        self.assertEqual(get_active_module(state).id, "m2")
        self.assertIsNone(state["lesson"])

    def test_cached_lesson_reused(self):
        state = apply_event(loaded_state(), ModuleSelected(module_id="m1"))
        state, token = begin_request(state, "lesson")
        state = apply_event(state, LessonLoaded(token=token, lesson=lesson("m1", ContentDepth.STANDARD, "standard")))

        state = apply_event(state, DepthChanged(depth=ContentDepth.SUMMARY))
        self.assertIsNone(state["lesson"])

        state = apply_event(state, DepthChanged(depth=ContentDepth.STANDARD))
        self.assertEqual(lesson_text(state), "standard")

    def test_same_depth_is_a_no_op(self):
        state = apply_event(loaded_state(), ModuleSelected(module_id="m1"))
        self.assertIs(apply_event(state, DepthChanged(depth=ContentDepth.STANDARD)), state)

    def test_input_state_untouched(self):
        state = apply_event(loaded_state(), ModuleSelected(module_id="m1"))
        state, token = begin_request(state, "lesson")
        before = dict(state["lesson_cache"])
        apply_event(state, LessonLoaded(token=token, lesson=lesson("m1", ContentDepth.STANDARD, "text")))
        self.assertEqual(state["lesson_cache"], before)
        self.assertIsNone(state["lesson"])


class TestExamEvents(unittest.TestCase):
    def setUp(self):
        state = apply_event(loaded_state(), ModuleSelected(module_id="m1"))
        state, token = begin_request(state, "exam")
        self.state = apply_event(state, ExamLoaded(token=token, questions=questions()))

    def test_exam_opens(self):
        self.assertTrue(self.state["exam_open"])
        self.assertEqual(self.state["exam"].total, 5)

    def test_answers_and_submission(self):
        state = self.state
        for qid, option in enumerate([0, 0, 0, 1, 2]):
            state = apply_event(state, AnswerSelected(question_id=qid, option_index=option))
        state = apply_event(state, ExamSubmitted())
        self.assertTrue(state["exam"].submitted)
        self.assertEqual(state["exam"].score, 3)
        # Earlier state keeps its own exam copy
        self.assertFalse(self.state["exam"].submitted)
        self.assertEqual(self.state["exam"].answers, {})

    def test_incomplete_submission_raises(self):
        state = apply_event(self.state, AnswerSelected(question_id=0, option_index=0))
        with self.assertRaises(IncompleteExam):
            apply_event(state, ExamSubmitted())

    def test_stale_exam_dropped_after_module_switch(self):
        state, token = begin_request(self.state, "exam")
        state = apply_event(state, ModuleSelected(module_id="m2"))
        state = apply_event(state, ExamLoaded(token=token, questions=questions(2)))
        self.assertEqual(state["exam"].total, 5)

    def test_close(self):
        self.assertFalse(apply_event(self.state, ExamClosed())["exam_open"])


class TestChatEvents(unittest.TestCase):
    def test_messages_append_in_order(self):
        state = loaded_state()
        state = apply_event(state, ChatMessageAdded(message=chat("1", "Hi")))
        state = apply_event(state, ChatMessageAdded(message=chat("2", "Hello!", role="assistant")))
        self.assertEqual([m.content for m in state["chat_history"]], ["Hi", "Hello!"])

    def test_stale_reply_dropped(self):
        state, token = begin_request(loaded_state(), "chat")
        state = apply_event(state, SessionReset())
        state = apply_event(state, ChatMessageAdded(message=chat("2", "late", role="assistant"), token=token))
        self.assertEqual(state["chat_history"], [])

    def test_image_attach_and_clear(self):
        state = apply_event(loaded_state(), ChatImageAttached(image=ImageAttachment(data="aGk=")))
        self.assertEqual(state["chat_image"].data_url(), "data:image/jpeg;base64,aGk=")
        self.assertIsNone(apply_event(state, ChatImageCleared())["chat_image"])

    def test_history_survives_new_document(self):
        state = apply_event(loaded_state(), ChatMessageAdded(message=chat("1", "Hi")))
        state = apply_event(state, DocumentLoaded(document="JVBERi0y", name="next.pdf", digest="zzz"))
        self.assertEqual(len(state["chat_history"]), 1)
        self.assertIsNone(state["structure"])

    def test_reset_clears_everything(self):
        state = apply_event(loaded_state(), ChatMessageAdded(message=chat("1", "Hi")))
        state = apply_event(state, SessionReset())
        self.assertIsNone(state["document"])
        self.assertEqual(state["chat_history"], [])


if __name__ == "__main__":
    unittest.main()
