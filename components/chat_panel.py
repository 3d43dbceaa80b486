"""
Sidekick chat panel
Contextual tutor chat with optional image attachment
"""

import logging
import time
import uuid

import streamlit as st

from backend.background import run_sync
from backend.errors import ServiceUnavailable
from backend.models import ChatMessage
from backend.orchestrator import converse, encode_image
from backend.session_state import (
    ChatMessageAdded, ChatImageAttached, ChatImageCleared,
    get_active_module, lesson_text,
)
from components.session import get_state, dispatch, begin

logger = logging.getLogger(__name__)

DRAFT_KEY = "chat_draft"
UPLOADER_GENERATION_KEY = "chat_uploader_generation"


def _new_message(role: str, content: str, has_image: bool = False) -> ChatMessage:
    return ChatMessage(id=uuid.uuid4().hex, role=role, content=content,
                       timestamp=time.time(), has_image=has_image)


def prefill_chat(text: str):
    """Put text in the chat box without sending it"""
    st.session_state[DRAFT_KEY] = text


def send_message(text: str):
    """Append the learner's turn, ask the tutor and append the reply"""
    state = get_state()
    image = state["chat_image"]
    if not text.strip() and image is None:
        return

    history = list(state["chat_history"])
    user_message = _new_message("user", text, has_image=image is not None)
    dispatch(ChatMessageAdded(message=user_message))
    dispatch(ChatImageCleared())
    st.session_state[UPLOADER_GENERATION_KEY] = st.session_state.get(UPLOADER_GENERATION_KEY, 0) + 1

    token = begin("chat")
    try:
        reply = run_sync(converse(history, text, lesson_text(state), image))
    except ServiceUnavailable as e:
        logger.error(f"Chat turn failed: {e}")
        st.toast("⚠️ The tutor is unavailable right now. Please try again.")
        return

    dispatch(ChatMessageAdded(message=_new_message("assistant", reply), token=token))


def render_chat_panel():
    """Transcript, attachment control and input box"""
    state = get_state()
    st.markdown("### 🤖 Sidekick")

    transcript = st.container(height=420)
    with transcript:
        if not state["chat_history"]:
            module = get_active_module(state)
            st.caption(f"I'm reading {module.title if module else 'the syllabus'}.")
            st.caption("Ask me anything!")
        for message in state["chat_history"]:
            with st.chat_message(message.role):
                st.markdown(message.content)
                if message.has_image:
                    st.caption("🖼️ Image attached")

    generation = st.session_state.get(UPLOADER_GENERATION_KEY, 0)
    upload = st.file_uploader("Attach an image", type=["png", "jpg", "jpeg", "webp"],
                              key=f"chat_image_{generation}")
    if upload is not None and state["chat_image"] is None:
        dispatch(ChatImageAttached(image=encode_image(upload.getvalue(), upload.type or "image/jpeg")))
        state = get_state()

    if state["chat_image"] is not None:
        col1, col2 = st.columns([3, 1])
        col1.caption("Image attached")
        if col2.button("✖", key="clear_chat_image", help="Remove image"):
            dispatch(ChatImageCleared())
            st.session_state[UPLOADER_GENERATION_KEY] = generation + 1
            st.rerun()

    with st.form("chat_form", clear_on_submit=True):
        text = st.text_input("Ask a question...", key=DRAFT_KEY, label_visibility="collapsed",
                             placeholder="Ask a question...")
        submitted = st.form_submit_button("Send", use_container_width=True)

    if submitted:
        with st.spinner("🤔 Thinking..."):
            send_message(text)
        st.rerun()
