"""
API Key overlay component
Shows when user needs to configure their AI provider API key
"""

import streamlit as st
from utils.config import (
    load_api_key, save_api_key, get_current_provider,
    set_current_provider, SUPPORTED_PROVIDERS, API_KEY_ENV_VARS
)
from utils.providers import validate_api_key, get_provider_info


def check_and_show_api_overlay() -> bool:
    """
    Check if API key is configured and show overlay if not.
    Returns True if API key is configured, False otherwise.
    """
    if load_api_key(get_current_provider()):
        return True

    show_api_key_overlay()
    return False


@st.dialog("🔑 AI Provider Setup", width="large")
def show_api_key_overlay():
    """Show modal dialog for API key configuration"""
    st.markdown("""
    ### Welcome to Syllabus Engine!

    To turn your syllabus into lessons, exams and a tutor, you'll need an API key from a supported AI provider.

    **Your API key is kept in memory by this app until it restarts. It is never written to disk and is only sent to your chosen provider.**
    """)

    current_provider = get_current_provider()

    provider_col, key_col = st.columns([1, 2])

    with provider_col:
        selected_provider = st.selectbox(
            "Choose AI Provider:",
            options=SUPPORTED_PROVIDERS,
            index=SUPPORTED_PROVIDERS.index(current_provider),
            format_func=lambda x: get_provider_info(x).get("name", x.title()),
            help="Select your preferred AI provider"
        )

        if selected_provider != current_provider:
            set_current_provider(selected_provider)
            st.rerun()

    provider_info = get_provider_info(selected_provider)

    with st.expander(f"ℹ️ About {provider_info.get('name', selected_provider)}", expanded=False):
        st.markdown(f"""
        **{provider_info.get('description', '')}**

        **Features:**
        - Narrated lessons: {'✅' if provider_info.get('supports_speech') else '❌'}
        """)

    with key_col:
        api_key = st.text_input(
            f"Enter your {provider_info.get('name', selected_provider)} API key:",
            type="password",
            placeholder=provider_info.get('api_key_prefix', 'sk-') + "...",
            help=f"You can also set {API_KEY_ENV_VARS[selected_provider]} in your environment or a .env file"
        )

    col1, col2 = st.columns(2)

    with col1:
        if st.button("💾 Use API Key", type="primary", use_container_width=True, disabled=not api_key):
            prefix = provider_info.get('api_key_prefix', 'sk-')
            if api_key and api_key.startswith(prefix):
                with st.spinner("Validating API key..."):
                    if validate_api_key(api_key, selected_provider):
                        save_api_key(api_key, selected_provider)
                        st.success("✅ API key validated!")
                        st.rerun()
                    else:
                        st.error(f"❌ Invalid API key for {provider_info.get('name', selected_provider)}")
            else:
                st.error(f"Please enter a valid {provider_info.get('name', selected_provider)} API key (should start with '{prefix}')")

    with col2:
        st.link_button(
            "🔗 Get API Key",
            provider_info.get('signup_url', '#'),
            help=f"Click to open {provider_info.get('name', selected_provider)}'s API key page",
            use_container_width=True
        )
