# app/streamlit/pages/9_Settings_Diagnostics.py
import _bootstrap
import sys
import streamlit as st

from core.config import load_settings, settings_diagnostics
from core.errors import ConfigurationError

st.set_page_config(page_title="Diagnostics: Settings", page_icon="🛠️", layout="wide")
st.title("Diagnostics: Settings")

try:
    settings = load_settings()
except ConfigurationError as e:
    st.error(str(e))
    st.stop()

st.subheader("Runtime")
st.write({"python_version": sys.version})

st.subheader("Detected configuration (lengths and flags only)")
st.json(settings_diagnostics(settings))

problems = []
if not settings.openai_api_key:
    problems.append('OpenAI key missing: set env OPENAI_API_KEY or [openai] api_key="..."')
if not settings.spreadsheet_id:
    problems.append('Spreadsheet ID missing: set env GOOGLE_SHEETS_ID or [google] spreadsheet_id="..."')
if not settings.service_account_info:
    problems.append("Service account missing: set SERVICE_ACCOUNT_JSON or a [service_account] block")

if problems:
    for p in problems:
        st.warning(p)
else:
    st.success("All collaborators configured.")
