# app/streamlit/pages/2_Chat_With_Persona.py
import _bootstrap
import streamlit as st

from adapters.sheets_persona_store import get_persona_by_name, open_worksheet
from adapters.workflow_webhook_adapter import send_chat_message
from core.config import load_settings
from core.errors import ConfigurationError, PersonaNotFoundError, PersonaPipelineError
from core.persona_chat import chat_with_persona, conversation_key
from core.synth_utils import make_completer

st.title("Chat With Persona")
try:
    settings = load_settings()
except ConfigurationError as e:
    st.error(str(e))
    st.stop()

mode = st.radio("Persona", ["Stored persona", "Custom attributes"], horizontal=True)
persona_name = ""
persona_attributes = ""
if mode == "Stored persona":
    persona_name = st.text_input("Persona name (as stored in the sheet)")
else:
    persona_attributes = st.text_area("Describe the persona", height=120)

# One conversation per persona; switching persona starts a fresh history.
histories = st.session_state.setdefault("chat_histories", {})
history = histories.setdefault(conversation_key(persona_name, persona_attributes), [])
for turn in history:
    with st.chat_message(turn["role"]):
        st.write(turn["content"])

message = st.chat_input("Ask a question")
if not message:
    st.stop()

with st.chat_message("user"):
    st.write(message)


def _reply() -> str:
    if settings.chat_webhook_url:
        out = send_chat_message(
            message,
            settings.chat_webhook_url,
            persona_name=persona_name,
            persona_attributes=persona_attributes,
            timeout=settings.request_timeout,
        )
        return out.persona_response

    persona = persona_attributes
    if persona_name:
        persona = get_persona_by_name(open_worksheet(settings), persona_name)
    return chat_with_persona(persona, message, make_completer(settings), history=history)


try:
    reply = _reply()
except ValueError as e:
    st.error(str(e))
    st.stop()
except PersonaNotFoundError as e:
    st.error(str(e))
    st.stop()
except PersonaPipelineError as e:
    st.error("I apologize, but I'm having trouble responding right now. Please try again in a moment.")
    st.caption(f"{e.stage}: {e}")
    st.stop()

with st.chat_message("assistant"):
    st.write(reply)
history.extend([{"role": "user", "content": message}, {"role": "assistant", "content": reply}])
