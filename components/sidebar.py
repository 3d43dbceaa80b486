"""
Sidebar component
Course outline, module navigation and course-level actions
"""

import streamlit as st

from backend.session_state import SessionReset
from components.session import get_state, dispatch, release_player


def show_sidebar(on_select_module=None):
    """Render the course outline; on_select_module(module_id) is called on click"""
    state = get_state()
    structure = state.get("structure")

    with st.sidebar:
        st.markdown("## 📖 Syllabus Engine")

        if structure is None:
            st.caption("Upload a syllabus PDF to begin.")
            st.page_link("pages/settings.py", label="Settings", icon="⚙️")
            return

        st.markdown(f"### {structure.title}")
        if structure.description:
            st.caption(structure.description)

        st.markdown("**MODULES**")
        if not structure.modules:
            st.caption("No modules were found in this syllabus.")
        for idx, module in enumerate(structure.modules, 1):
            is_active = module.id == state["active_module_id"]
            st.button(
                f"{idx}. {module.title}",
                key=f"module_{module.id}",
                type="primary" if is_active else "secondary",
                use_container_width=True,
                on_click=on_select_module,
                args=(module.id,),
            )

        st.markdown("---")
        if st.button("🕸️ View Knowledge Graph", use_container_width=True):
            st.session_state.show_graph = True

        if st.button("📄 Upload another syllabus", use_container_width=True):
            release_player()
            dispatch(SessionReset())
            st.rerun()

        st.page_link("pages/settings.py", label="Settings", icon="⚙️")
