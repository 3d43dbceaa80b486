"""
Course page
Syllabus upload, lesson viewer, narration, exam, knowledge graph and chat
"""

import logging

import streamlit as st

from backend.audio import decode_pcm16
from backend.background import run_sync, submit
from backend.course_prompts import explain_selection_prompt
from backend.errors import FatalIngestFailure, PlaybackFailure, ServiceUnavailable
from backend.layout import ForceLayout
from backend.models import ContentDepth
from backend.orchestrator import (
    encode_document, document_digest, extract_structure,
    generate_lesson, generate_graph, generate_exam, synthesize_speech,
)
from backend.session_state import (
    DocumentLoaded, StructureLoaded, IngestFailed,
    LessonLoaded, GraphLoaded, ExamLoaded,
    get_active_module, is_current, lesson_text,
)
from components.chat_panel import render_chat_panel, prefill_chat
from components.exam_panel import show_exam_dialog
from components.graph_viz import create_knowledge_graph, status_legend
from components.session import (
    get_state, dispatch, begin, get_player, select_module, change_depth, PENDING_AUDIO_KEY,
)
from components.sidebar import show_sidebar
from utils.config import GRAPH_WIDTH, GRAPH_HEIGHT

logger = logging.getLogger(__name__)

GRAPH_FUTURE_KEY = "graph_future"
GRAPH_LAYOUT_KEY = "graph_layout"
FRAME_EVERY = 5  # ticks between redraws while the layout is moving


# ──────────────────────────────────
# Handlers
# ──────────────────────────────────

def ingest_syllabus(upload):
    """Extract structure (fatal on failure) and start the graph in the background"""
    document = encode_document(upload.getvalue())
    dispatch(DocumentLoaded(document=document, name=upload.name, digest=document_digest(document)))
    token = begin("structure")

    with st.spinner("Analyzing Syllabus Structure..."):
        try:
            structure = run_sync(extract_structure(document))
        except FatalIngestFailure as e:
            logger.error(f"Syllabus ingest failed for '{upload.name}': {e} (cause: {e.__cause__})")
            dispatch(IngestFailed(message="Failed to process syllabus. Please try again."))
            return

    if not is_current(get_state(), "structure", token):
        return
    dispatch(StructureLoaded(structure=structure))

    graph_token = begin("graph")
    st.session_state[GRAPH_FUTURE_KEY] = (graph_token, submit("knowledge graph", lambda: generate_graph(document)))


def collect_graph():
    """Fold a finished background graph fetch into state"""
    pending = st.session_state.get(GRAPH_FUTURE_KEY)
    if not pending:
        return
    token, future = pending
    if not future.done():
        return
    del st.session_state[GRAPH_FUTURE_KEY]
    try:
        graph = future.result()
    except Exception as e:
        logger.error(f"Knowledge graph task crashed: {type(e).__name__}: {e}")
        return
    dispatch(GraphLoaded(token=token, graph=graph))


@st.fragment(run_every=2)
def watch_graph():
    """Poll the background fetch so the graph appears without user input"""
    pending = st.session_state.get(GRAPH_FUTURE_KEY)
    if pending and pending[1].done():
        st.rerun()


def load_lesson():
    """Generate the lesson for the active module/depth unless it is already current"""
    state = get_state()
    module = get_active_module(state)
    if module is None or state["lesson"] is not None:
        return

    depth = state["depth"]
    token = begin("lesson")
    try:
        lesson = run_sync(generate_lesson(state["document"], module, depth))
    except ServiceUnavailable as e:
        logger.error(f"Lesson generation failed: {e}")
        st.warning("Lesson generation is unavailable right now. Please try again.")
        return
    dispatch(LessonLoaded(token=token, lesson=lesson))


def on_depth_change():
    change_depth(ContentDepth(st.session_state.depth_choice))


def play_audio_tutor():
    text = lesson_text(get_state())
    if not text:
        return
    token = begin("speech")
    with st.spinner("🎧 Preparing narration..."):
        audio_b64 = run_sync(synthesize_speech(text))
    if not audio_b64:
        st.toast("Narration is unavailable right now.")
        return
    if not is_current(get_state(), "speech", token):
        return
    try:
        get_player().play(decode_pcm16(audio_b64))
    except PlaybackFailure as e:
        logger.error(f"Narration playback failed: {e}")
        st.toast("⚠️ Could not play narration.")


def start_exam():
    state = get_state()
    module = get_active_module(state)
    if module is None:
        return
    token = begin("exam")
    with st.spinner("📝 Writing your exam..."):
        questions = run_sync(generate_exam(state["document"], module))
    dispatch(ExamLoaded(token=token, questions=questions))


# ──────────────────────────────────
# Views
# ──────────────────────────────────

def render_upload_screen():
    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.markdown("# 📖 Syllabus Engine")
        st.markdown("Upload your course syllabus PDF to generate an interactive AI tutor.")

        state = get_state()
        if state["ingest_error"]:
            st.error(state["ingest_error"])

        generation = st.session_state.get("upload_generation", 0)
        upload = st.file_uploader("Click to upload PDF", type=["pdf"], key=f"syllabus_{generation}")
        if upload is not None:
            # A fresh uploader next time, so a failed file can be picked again
            st.session_state.upload_generation = generation + 1
            ingest_syllabus(upload)
            st.rerun()


def _graph_layout(graph) -> ForceLayout:
    cached = st.session_state.get(GRAPH_LAYOUT_KEY)
    if cached is None or cached.graph is not graph:
        cached = ForceLayout(graph, width=GRAPH_WIDTH, height=GRAPH_HEIGHT)
        st.session_state[GRAPH_LAYOUT_KEY] = cached
    return cached


def _animate(layout: ForceLayout, placeholder):
    """Redraw while the simulation moves, then once at rest"""
    for tick, _positions in enumerate(layout.ticks(max_ticks=600), 1):
        if tick % FRAME_EVERY == 0:
            placeholder.graphviz_chart(create_knowledge_graph(layout), use_container_width=True)
    placeholder.graphviz_chart(create_knowledge_graph(layout), use_container_width=True)


@st.dialog("Course Knowledge Graph", width="large")
def show_graph_dialog():
    graph = get_state()["graph"]
    if graph is None:
        st.info("⏳ The knowledge graph is still being generated. Check back in a moment.")
        return
    if graph.is_empty:
        st.info("No knowledge graph is available for this syllabus.")
        return

    layout = _graph_layout(graph)
    placeholder = st.empty()
    _animate(layout, placeholder)

    labels = {node.id: node.label for node in graph.nodes}
    with st.expander("📌 Move a concept"):
        node_id = st.selectbox("Concept", options=list(labels), format_func=labels.get)
        x, y = layout.positions()[node_id]
        col1, col2 = st.columns(2)
        new_x = col1.slider("x", 0, GRAPH_WIDTH, int(min(max(x, 0), GRAPH_WIDTH)))
        new_y = col2.slider("y", 0, GRAPH_HEIGHT, int(min(max(y, 0), GRAPH_HEIGHT)))
        pin_col, release_col = st.columns(2)
        if pin_col.button("Pin here", use_container_width=True):
            layout.drag(node_id, new_x, new_y)
            _animate(layout, placeholder)
        if release_col.button("Release", use_container_width=True):
            layout.drag_end(node_id)
            _animate(layout, placeholder)

    st.caption("Nodes represent concepts. Links represent dependencies.  " + "  ".join(
        f":{'green' if label == 'Completed' else 'gray' if label == 'Locked' else 'blue'}[●] {label}"
        for label in status_legend()
    ))


def render_lesson_area():
    state = get_state()
    module = get_active_module(state)

    header_col, depth_col, audio_col, exam_col = st.columns([4, 3, 1, 2])
    with header_col:
        st.markdown(f"## {module.title if module else 'Welcome to your Course'}")
    with depth_col:
        st.radio(
            "Depth",
            options=[d.value for d in ContentDepth],
            index=[d.value for d in ContentDepth].index(state["depth"].value),
            key="depth_choice",
            horizontal=True,
            label_visibility="collapsed",
            on_change=on_depth_change,
        )
    with audio_col:
        if st.button("🎧", help="Podcast Mode", disabled=not lesson_text(state)):
            play_audio_tutor()
    with exam_col:
        if st.button("Simulate Exam", type="primary", disabled=module is None, use_container_width=True):
            start_exam()

    pending_audio = st.session_state.get(PENDING_AUDIO_KEY)
    if pending_audio is not None:
        st.audio(pending_audio.samples, sample_rate=pending_audio.sample_rate, autoplay=True)

    if module is None:
        st.info("📚 Select a module from the sidebar to begin learning.")
        return

    if state["lesson"] is None:
        with st.spinner("✍️ Writing your lesson..."):
            load_lesson()
        state = get_state()

    if state["lesson"] is not None:
        st.markdown(state["lesson"].text)

        with st.expander("💡 Explain a passage"):
            passage = st.text_area("Paste a passage from the lesson", key="explain_passage")
            if st.button("Explain like I'm 5", disabled=not passage.strip()):
                prefill_chat(explain_selection_prompt(passage))


# ──────────────────────────────────
# Page
# ──────────────────────────────────

collect_graph()
show_sidebar(on_select_module=select_module)

if get_state()["structure"] is None:
    render_upload_screen()
    st.stop()

main_col, chat_col = st.columns([3, 1.3])
with main_col:
    render_lesson_area()
with chat_col:
    render_chat_panel()

if GRAPH_FUTURE_KEY in st.session_state:
    watch_graph()

if get_state()["exam_open"]:
    show_exam_dialog()

if st.session_state.get("show_graph"):
    st.session_state.show_graph = False
    show_graph_dialog()
