"""
Streamlit binding for the session state
Pages read state through get_state() and change it only through dispatch()
"""

import streamlit as st

from backend.audio import AudioPlayer, AudioBuffer
from backend.models import ContentDepth
from backend.session_state import (
    SessionState, Event, ModuleSelected, DepthChanged,
    create_initial_state, apply_event, begin_request,
)

STATE_KEY = "course_state"
PLAYER_KEY = "audio_player"
PENDING_AUDIO_KEY = "pending_audio"


def get_state() -> SessionState:
    if STATE_KEY not in st.session_state:
        st.session_state[STATE_KEY] = create_initial_state()
    return st.session_state[STATE_KEY]


def dispatch(event: Event) -> SessionState:
    state = apply_event(get_state(), event)
    st.session_state[STATE_KEY] = state
    return state


def begin(slot: str) -> int:
    """Take a request token for a slot"""
    state, token = begin_request(get_state(), slot)
    st.session_state[STATE_KEY] = state
    return token


def get_player() -> AudioPlayer:
    """One player per browser session; the buffer is drawn on the next rerun"""
    if PLAYER_KEY not in st.session_state:
        def sink(buffer: AudioBuffer):
            st.session_state[PENDING_AUDIO_KEY] = buffer

        def on_stop():
            st.session_state.pop(PENDING_AUDIO_KEY, None)

        st.session_state[PLAYER_KEY] = AudioPlayer(sink, on_stop)
    return st.session_state[PLAYER_KEY]


def release_player():
    """Close the session's player; the next get_player() starts a fresh one"""
    player = st.session_state.pop(PLAYER_KEY, None)
    if player is not None:
        player.close()


def select_module(module_id: str):
    """Switch module; narration of the previous lesson stops"""
    get_player().stop()
    dispatch(ModuleSelected(module_id=module_id))


def change_depth(depth: ContentDepth):
    get_player().stop()
    dispatch(DepthChanged(depth=depth))
