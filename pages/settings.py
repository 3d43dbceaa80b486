"""
Settings page
Manage API keys and provider configuration
"""

import streamlit as st
from utils.config import (
    load_api_key, save_api_key, clear_api_key, get_current_provider,
    set_current_provider, SUPPORTED_PROVIDERS, API_KEY_ENV_VARS,
    SPEECH_CHAR_LIMIT, CHAT_CONTEXT_CHAR_LIMIT, CHAT_HISTORY_LIMIT, EXAM_QUESTION_COUNT,
)
from utils.providers import validate_api_key, get_provider_info, list_available_models

# Page header
st.markdown("# ⚙️ Settings")
st.markdown("Manage your Syllabus Engine configuration")

if st.button("← Back to Course", key="back_to_course"):
    st.switch_page("pages/course.py")

st.markdown("---")

# AI Provider section
st.markdown("## 🤖 AI Provider Configuration")

current_provider = get_current_provider()
provider_info = get_provider_info(current_provider)

col1, col2 = st.columns([1, 1])

with col1:
    st.markdown("### Current Provider")
    st.info(f"**{provider_info.get('name', current_provider.title())}**")
    st.markdown(provider_info.get('description', ''))

    new_provider = st.selectbox(
        "Switch Provider:",
        options=SUPPORTED_PROVIDERS,
        index=SUPPORTED_PROVIDERS.index(current_provider),
        format_func=lambda x: get_provider_info(x).get("name", x.title()),
        help="Select your preferred AI provider"
    )

    if new_provider != current_provider:
        if st.button("🔄 Switch Provider", type="secondary"):
            set_current_provider(new_provider)
            st.success(f"Switched to {get_provider_info(new_provider).get('name', new_provider)}")
            st.rerun()

with col2:
    st.markdown("### Models by Request")
    try:
        models = list_available_models(current_provider)
        for task, model in models.items():
            st.code(f"{task}: {model}")
    except Exception as e:
        st.warning(f"Could not load models: {e}")

st.markdown("---")

# API Key section
st.markdown(f"## 🔑 {provider_info.get('name', current_provider.title())} API Key")

current_key = load_api_key(current_provider)

if current_key:
    st.success("✅ API Key is configured")
    st.code(current_key[:7] + "..." + current_key[-4:])

    if st.button("🗑️ Forget API Key", type="secondary"):
        clear_api_key(current_provider)
        st.success("API key removed from memory.")
        st.rerun()
    st.caption(f"Keys loaded from {API_KEY_ENV_VARS[current_provider]} stay available until the environment changes.")
else:
    st.warning("⚠️ No API Key configured")

    with st.form("set_api_key"):
        new_key = st.text_input(
            f"Enter your {provider_info.get('name', current_provider)} API key:",
            type="password",
            placeholder=provider_info.get('api_key_prefix', 'sk-') + "...",
            help="Kept in memory until the app restarts; never written to disk"
        )

        if st.form_submit_button("💾 Use API Key", type="primary"):
            prefix = provider_info.get('api_key_prefix', 'sk-')
            if new_key and new_key.startswith(prefix):
                with st.spinner("Validating API key..."):
                    if validate_api_key(new_key, current_provider):
                        save_api_key(new_key, current_provider)
                        st.success("✅ API key validated!")
                        st.rerun()
                    else:
                        st.error(f"❌ Invalid API key for {provider_info.get('name', current_provider)}")
            else:
                st.error(f"Please enter a valid {provider_info.get('name', current_provider)} API key (should start with '{prefix}')")

    st.link_button(
        "🔗 Get API Key",
        provider_info.get('signup_url', '#'),
        help=f"Create an API key on {provider_info.get('name', current_provider)}'s website"
    )

# Limits section
st.markdown("---")
st.markdown("## 📏 Generation Limits")
st.markdown(f"""
- Narration reads the first **{SPEECH_CHAR_LIMIT}** characters of a lesson
- The tutor sees the first **{CHAT_CONTEXT_CHAR_LIMIT}** characters of the current lesson
- The tutor receives the last **{CHAT_HISTORY_LIMIT if CHAT_HISTORY_LIMIT is not None else 'all'}** chat messages
- Practice exams have **{EXAM_QUESTION_COUNT}** questions
""")

# About section
st.markdown("---")
st.markdown("## ℹ️ About Syllabus Engine")
st.markdown("""
- 📚 Course outline extracted from your syllabus
- ✍️ Lessons at Summary, Standard or Deep Dive depth
- 🕸️ Knowledge graph of concept dependencies
- 📝 Practice exams with explanations
- 🎧 Narrated lessons
- 🤖 A tutor that knows what you are reading

Nothing is stored: closing the tab ends the session.
""")
