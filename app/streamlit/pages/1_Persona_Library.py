# app/streamlit/pages/1_Persona_Library.py
import _bootstrap
import streamlit as st

from adapters.sheets_persona_store import get_all_personas, open_worksheet
from core.config import load_settings
from core.errors import ConfigurationError

st.title("Persona Library")
st.caption("Personas stored in the Google Sheet, newest last.")

try:
    settings = load_settings()
except ConfigurationError as e:
    st.error(str(e))
    st.stop()

try:
    ws = open_worksheet(settings)
except ConfigurationError as e:
    st.info(str(e))
    st.stop()

with st.spinner("Reading sheet…"):
    try:
        personas = get_all_personas(ws)
    except Exception as e:
        st.exception(e)
        st.stop()

if not personas:
    st.warning("The sheet has no personas yet.")
    st.stop()

case_types = sorted({p.case_type for p in personas if p.case_type})
chosen = st.multiselect("Case type", case_types, default=case_types)

shown = [p for p in personas if not chosen or p.case_type in chosen]
st.write(f"{len(shown)} of {len(personas)} personas")

for p in shown:
    with st.expander(f"{p.name} | {p.age or '?'} | {p.demographics} | score {p.validation_score:.0f}"):
        st.write(p.bio)
        if p.motivations:
            st.markdown("**Motivations**")
            st.write(p.motivations)
        if p.barriers:
            st.markdown("**Barriers**")
            st.write(p.barriers)
        if p.example_quote:
            st.markdown(f"> {p.example_quote}")
        st.json(p.model_dump(), expanded=False)
