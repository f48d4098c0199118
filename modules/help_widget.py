import streamlit as st

HELPER_CSS = """
<style>
.help-card {
  background: white;
  border-radius: 12px;
  box-shadow: 0px 4px 15px rgba(0,0,0,0.3);
  padding: 15px;
  margin-top: 10px;
}
</style>
"""


def render_help_widget(assistant, key: str = "faq"):
    """Floating "May I Help You?" box that sends one question to the FAQ assistant."""
    st.markdown(HELPER_CSS, unsafe_allow_html=True)

    open_key = f"{key}_open"
    answer_key = f"{key}_answer"
    if open_key not in st.session_state:
        st.session_state[open_key] = False

    col1, col2, col3 = st.columns([8, 1, 1])
    with col3:
        if st.button("❓", key=f"{key}_btn", help="Need help?"):
            st.session_state[open_key] = not st.session_state[open_key]

    if not st.session_state[open_key]:
        return

    st.markdown("### 🤖 May I Help You?")
    with st.form(f"{key}_form", clear_on_submit=False):
        question = st.text_area("Ask a question about school life", placeholder="e.g. What are the library hours?")
        asked = st.form_submit_button("Ask")

    if asked:
        if not question.strip():
            st.warning("Please type a question first.")
        else:
            with st.spinner("Thinking..."):
                st.session_state[answer_key] = assistant.ask(question)

    if st.session_state.get(answer_key):
        st.info(st.session_state[answer_key])
