"""
Exam panel component
Shows the practice exam, collects answers and reports the score
"""

import streamlit as st

from backend.exam import ExamSession
from backend.session_state import AnswerSelected, ExamSubmitted, ExamClosed
from components.session import get_state, dispatch

OPTION_MARKERS = {
    "correct": "✅",
    "incorrect": "❌",
    "unselected": "▫️",
}


def _on_answer(question_id: int, key: str):
    choice = st.session_state.get(key)
    if choice is not None:
        dispatch(AnswerSelected(question_id=question_id, option_index=choice))


def _render_question(exam: ExamSession, number: int, question):
    st.markdown(f"**{number}. {question.question}**")

    if exam.submitted:
        for option_index, option in enumerate(question.options):
            status = exam.option_status(question.id, option_index)
            st.markdown(f"{OPTION_MARKERS[status]} {option}")
        st.info(f"**Explanation:** {question.explanation}")
        return

    key = f"exam_q_{question.id}"
    st.radio(
        "Choose one",
        options=list(range(len(question.options))),
        format_func=lambda i: question.options[i],
        index=exam.answers.get(question.id),
        key=key,
        label_visibility="collapsed",
        on_change=_on_answer,
        args=(question.id, key),
    )


@st.dialog("📝 Midterm Simulator", width="large")
def show_exam_dialog():
    """Modal exam; submission stays disabled until every question is answered"""
    exam = get_state()["exam"]
    if exam is None or not exam.questions:
        st.warning("No exam questions could be generated for this module. Please try again later.")
        if st.button("Close"):
            dispatch(ExamClosed())
            st.rerun()
        return

    for number, question in enumerate(exam.questions, 1):
        _render_question(exam, number, question)
        st.markdown("---")

    col1, col2 = st.columns([2, 1])
    with col1:
        if exam.submitted:
            st.markdown(f"### Score: {exam.score} / {exam.total}")
        else:
            st.caption("Answer all questions to submit")

    with col2:
        if not exam.submitted:
            if st.button("Submit Exam", type="primary", disabled=not exam.can_submit, use_container_width=True):
                dispatch(ExamSubmitted())
                st.rerun()
        else:
            if st.button("Close", use_container_width=True):
                dispatch(ExamClosed())
                st.rerun()
