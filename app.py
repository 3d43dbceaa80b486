"""
Syllabus Engine - AI course companion for a syllabus PDF
Main entry point with Streamlit navigation
"""

import logging

import streamlit as st
from components.api_key_overlay import check_and_show_api_overlay

logging.basicConfig(level=logging.INFO)

# Page configuration
st.set_page_config(
    page_title="Syllabus Engine",
    page_icon="📖",
    layout="wide",
    initial_sidebar_state="expanded"
)

# Define pages
course = st.Page("pages/course.py", title="Course", url_path="", default=True)
settings = st.Page("pages/settings.py", title="Settings", url_path="settings")

pg = st.navigation([course, settings])

# Hide the auto generated nav; the course sidebar links to Settings itself
st.markdown("""
<style>
[data-testid="stSidebarNav"] {
    display: none !important;
}
</style>
""", unsafe_allow_html=True)

# The course page needs a credential before it can call the model
if pg.url_path != "settings" and not check_and_show_api_overlay():
    st.stop()

# Run selected page
pg.run()
