# backend/session_state.py
"""
Session state definitions for Syllabus Engine
apply_event(state, event) -> new state is the only way state changes
"""

import logging
from typing import Dict, List, Optional, Tuple, TypedDict

from pydantic import BaseModel, ConfigDict

from backend.exam import ExamSession
from backend.models import (
    ChatMessage, ContentDepth, CourseStructure, ExamQuestion,
    ImageAttachment, KnowledgeGraph, LessonContent,
)

logger = logging.getLogger(__name__)

# Logical request slots; a newer request in a slot supersedes older ones
SLOTS = ("structure", "lesson", "graph", "exam", "speech", "chat")


class SessionState(TypedDict, total=False):
    """Complete state for one learner session"""

    # Uploaded document
    document: Optional[str]  # base64 PDF
    document_name: Optional[str]
    document_digest: Optional[str]

    # Course
    structure: Optional[CourseStructure]
    ingest_error: Optional[str]
    active_module_id: Optional[str]
    depth: ContentDepth

    # Lesson
    lesson: Optional[LessonContent]
    lesson_cache: Dict[str, LessonContent]

    # Knowledge graph (None until the background fetch resolves)
    graph: Optional[KnowledgeGraph]

    # Exam
    exam: Optional[ExamSession]
    exam_open: bool

    # Chat
    chat_history: List[ChatMessage]
    chat_image: Optional[ImageAttachment]

    # Last-request-wins bookkeeping
    slot_tokens: Dict[str, int]


def create_initial_state() -> SessionState:
    """Create an empty session"""
    return {
        "document": None,
        "document_name": None,
        "document_digest": None,

        "structure": None,
        "ingest_error": None,
        "active_module_id": None,
        "depth": ContentDepth.STANDARD,

        "lesson": None,
        "lesson_cache": {},

        "graph": None,

        "exam": None,
        "exam_open": False,

        "chat_history": [],
        "chat_image": None,

        "slot_tokens": {slot: 0 for slot in SLOTS},
    }


# ──────────────────────────────────
# Events
# ──────────────────────────────────

class Event(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class DocumentLoaded(Event):
    document: str
    name: str
    digest: str


class StructureLoaded(Event):
    structure: CourseStructure


class IngestFailed(Event):
    message: str


class ModuleSelected(Event):
    module_id: str


class DepthChanged(Event):
    depth: ContentDepth


class RequestStarted(Event):
    slot: str


class LessonLoaded(Event):
    token: int
    lesson: LessonContent


class GraphLoaded(Event):
    token: int
    graph: KnowledgeGraph


class ExamLoaded(Event):
    token: int
    questions: List[ExamQuestion]


class AnswerSelected(Event):
    question_id: int
    option_index: int


class ExamSubmitted(Event):
    pass


class ExamClosed(Event):
    pass


class ChatMessageAdded(Event):
    message: ChatMessage
    token: Optional[int] = None


class ChatImageAttached(Event):
    image: ImageAttachment


class ChatImageCleared(Event):
    pass


class SessionReset(Event):
    pass


# ──────────────────────────────────
# Helpers
# ──────────────────────────────────

def lesson_cache_key(digest: Optional[str], module_id: str, depth: ContentDepth) -> str:
    return f"{digest}:{module_id}:{depth.value}"


def is_current(state: SessionState, slot: str, token: int) -> bool:
    """True if token belongs to the newest request in the slot"""
    return state["slot_tokens"].get(slot, 0) == token


def begin_request(state: SessionState, slot: str) -> Tuple[SessionState, int]:
    """Start a request in a slot; returns the new state and its token"""
    state = apply_event(state, RequestStarted(slot=slot))
    return state, state["slot_tokens"][slot]


def _bump(state: SessionState, *slots: str) -> Dict[str, int]:
    tokens = dict(state["slot_tokens"])
    for slot in slots:
        if slot not in tokens:
            raise ValueError(f"Unknown request slot: {slot}")
        tokens[slot] += 1
    return tokens


def _stale(state: SessionState, slot: str, token: int) -> bool:
    if is_current(state, slot, token):
        return False
    logger.info(f"Discarding superseded {slot} result (token {token}, latest {state['slot_tokens'].get(slot)})")
    return True


def _cached_lesson(state: SessionState, module_id: Optional[str], depth: ContentDepth) -> Optional[LessonContent]:
    if module_id is None:
        return None
    return state["lesson_cache"].get(lesson_cache_key(state["document_digest"], module_id, depth))


def get_active_module(state: SessionState):
    structure = state.get("structure")
    if structure is None or state.get("active_module_id") is None:
        return None
    return structure.get_module(state["active_module_id"])


def lesson_text(state: SessionState) -> str:
    lesson = state.get("lesson")
    return lesson.text if lesson else ""


# ──────────────────────────────────
# Transition function
# ──────────────────────────────────

def apply_event(state: SessionState, event: Event) -> SessionState:
    """Return the state after an event; the input state is left untouched"""
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise ValueError(f"Unhandled event: {type(event).__name__}")
    return handler(state, event)


def _on_document_loaded(state: SessionState, event: DocumentLoaded) -> SessionState:
    # Everything in flight belongs to the previous document
    fresh = create_initial_state()
    fresh["slot_tokens"] = _bump(state, *SLOTS)
    fresh["chat_history"] = list(state["chat_history"])
    fresh.update(document=event.document, document_name=event.name, document_digest=event.digest)
    return fresh


def _on_structure_loaded(state: SessionState, event: StructureLoaded) -> SessionState:
    return {
        **state,
        "structure": event.structure,
        "ingest_error": None,
        "active_module_id": None,
        "lesson": None,
        "graph": None,
        "exam": None,
        "exam_open": False,
    }


def _on_ingest_failed(state: SessionState, event: IngestFailed) -> SessionState:
    return {
        **state,
        "document": None,
        "document_name": None,
        "document_digest": None,
        "structure": None,
        "ingest_error": event.message,
        "slot_tokens": _bump(state, *SLOTS),
    }


def _on_module_selected(state: SessionState, event: ModuleSelected) -> SessionState:
    structure = state.get("structure")
    if structure is None or structure.get_module(event.module_id) is None:
        raise ValueError(f"Unknown module: {event.module_id}")
    return {
        **state,
        "active_module_id": event.module_id,
        "lesson": _cached_lesson(state, event.module_id, state["depth"]),
        "slot_tokens": _bump(state, "lesson", "exam"),
    }


def _on_depth_changed(state: SessionState, event: DepthChanged) -> SessionState:
    if event.depth == state["depth"]:
        return state
    return {
        **state,
        "depth": event.depth,
        "lesson": _cached_lesson(state, state["active_module_id"], event.depth),
        "slot_tokens": _bump(state, "lesson"),
    }


def _on_request_started(state: SessionState, event: RequestStarted) -> SessionState:
    return {**state, "slot_tokens": _bump(state, event.slot)}


def _on_lesson_loaded(state: SessionState, event: LessonLoaded) -> SessionState:
    if _stale(state, "lesson", event.token):
        return state
    cache = dict(state["lesson_cache"])
    cache[lesson_cache_key(state["document_digest"], event.lesson.module_id, event.lesson.depth)] = event.lesson
    return {**state, "lesson": event.lesson, "lesson_cache": cache}


def _on_graph_loaded(state: SessionState, event: GraphLoaded) -> SessionState:
    if _stale(state, "graph", event.token):
        return state
    return {**state, "graph": event.graph}


def _on_exam_loaded(state: SessionState, event: ExamLoaded) -> SessionState:
    if _stale(state, "exam", event.token):
        return state
    return {**state, "exam": ExamSession(questions=list(event.questions)), "exam_open": True}


def _on_answer_selected(state: SessionState, event: AnswerSelected) -> SessionState:
    if state["exam"] is None:
        return state
    exam = state["exam"].model_copy(deep=True)
    exam.select(event.question_id, event.option_index)
    return {**state, "exam": exam}


def _on_exam_submitted(state: SessionState, event: ExamSubmitted) -> SessionState:
    if state["exam"] is None:
        return state
    exam = state["exam"].model_copy(deep=True)
    exam.submit()
    return {**state, "exam": exam}


def _on_exam_closed(state: SessionState, event: ExamClosed) -> SessionState:
    return {**state, "exam_open": False}


def _on_chat_message_added(state: SessionState, event: ChatMessageAdded) -> SessionState:
    if event.token is not None and _stale(state, "chat", event.token):
        return state
    return {**state, "chat_history": state["chat_history"] + [event.message]}


def _on_chat_image_attached(state: SessionState, event: ChatImageAttached) -> SessionState:
    return {**state, "chat_image": event.image}


def _on_chat_image_cleared(state: SessionState, event: ChatImageCleared) -> SessionState:
    return {**state, "chat_image": None}


def _on_session_reset(state: SessionState, event: SessionReset) -> SessionState:
    fresh = create_initial_state()
    fresh["slot_tokens"] = _bump(state, *SLOTS)
    return fresh


_HANDLERS = {
    DocumentLoaded: _on_document_loaded,
    StructureLoaded: _on_structure_loaded,
    IngestFailed: _on_ingest_failed,
    ModuleSelected: _on_module_selected,
    DepthChanged: _on_depth_changed,
    RequestStarted: _on_request_started,
    LessonLoaded: _on_lesson_loaded,
    GraphLoaded: _on_graph_loaded,
    ExamLoaded: _on_exam_loaded,
    AnswerSelected: _on_answer_selected,
    ExamSubmitted: _on_exam_submitted,
    ExamClosed: _on_exam_closed,
    ChatMessageAdded: _on_chat_message_added,
    ChatImageAttached: _on_chat_image_attached,
    ChatImageCleared: _on_chat_image_cleared,
    SessionReset: _on_session_reset,
}
