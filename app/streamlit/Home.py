import _bootstrap
import logging
import streamlit as st

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

st.set_page_config(page_title="Persona Studio", page_icon="🧑‍🤝‍🧑", layout="wide")
st.title("Persona Studio")
st.caption("Uploads + research → evidence → grounded personas → Google Sheets → chat")

st.markdown("""
**Pages**
- Generate Personas: upload MRI / TargetSmart / client files, add research, generate evidence-grounded personas
- Persona Library: browse the personas stored in your Google Sheet
- Chat With Persona: interview a stored persona, or one described in free text
- Settings Diagnostics: check which keys and endpoints are configured (lengths only)
""")
