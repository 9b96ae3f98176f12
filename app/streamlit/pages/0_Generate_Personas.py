# app/streamlit/pages/0_Generate_Personas.py
import _bootstrap  # ensures repo root is on sys.path; keep this first
import json
import uuid
import streamlit as st

from adapters.document_extractor import UploadedFile, process_files
from adapters.sheets_persona_store import open_worksheet, store_personas
from adapters.workflow_webhook_adapter import trigger_persona_workflow, validate_campaign_fields
from core.config import load_settings
from core.errors import (
    ConfigurationError,
    GenerationCallError,
    InsufficientDataError,
    ParseError,
    WebhookError,
)
from core.models import CampaignParameters
from core.persona_engine import generate_personas
from utils.store import save_run

st.title("Generate Personas")
st.caption("Every trait must trace back to the uploaded files or research below.")

try:
    settings = load_settings()
except ConfigurationError as e:
    st.error(str(e))
    st.stop()

# ──────────────────────────────────────────────────────────────────────
# Campaign form
# ──────────────────────────────────────────────────────────────────────
with st.form("campaign"):
    matter = st.text_input("Case type / matter")
    keywords = st.text_input("Keywords")
    target_description = st.text_area("Target audience", height=100)
    persona_count = st.number_input("Number of personas", min_value=1, max_value=25,
                                    value=settings.default_persona_count)

    st.markdown("**Source files** (CSV, Excel, PDF, DOCX or text)")
    col1, col2, col3 = st.columns(3)
    mri = col1.file_uploader("MRI data", key="mri_file")
    targetsmart = col2.file_uploader("TargetSmart data", key="targetsmart_file")
    client = col3.file_uploader("Client data", key="client_file")

    research_text = st.text_area(
        "Research results (JSON with demographics / social_insights / consumer_behavior)",
        height=160,
        value="{}",
    )
    use_webhook = st.checkbox(
        "Hand off to the workflow engine instead of generating here",
        value=False,
        disabled=not settings.generate_webhook_url,
    )
    submitted = st.form_submit_button("Generate", type="primary")


def _run() -> None:
    fields = {"matter": matter, "keywords": keywords, "target_description": target_description}
    try:
        validate_campaign_fields(fields)
    except ValueError as e:
        st.error(str(e))
        return

    try:
        research = json.loads(research_text or "{}")
    except json.JSONDecodeError as e:
        st.error(f"Research results aren't valid JSON: {e}")
        return

    session_id = str(uuid.uuid4())
    uploads = {
        name: UploadedFile(field_name=name, filename=f.name, content=f.getvalue())
        for name, f in (("mri_file", mri), ("targetsmart_file", targetsmart), ("client_file", client))
        if f is not None
    }

    if use_webhook:
        with st.spinner("Sending to the workflow engine…"):
            try:
                reply = trigger_persona_workflow(
                    {**fields, "persona_count": int(persona_count), "session_id": session_id},
                    uploads,
                    settings.generate_webhook_url,
                    timeout=settings.request_timeout,
                )
            except WebhookError as e:
                st.error(f"Persona generation failed ({e.status_code}).")
                st.code(e.body)
                return
        st.success("Generation started. You will receive the report via email.")
        st.json(reply)
        return

    campaign = CampaignParameters(**fields, persona_count=int(persona_count), session_id=session_id)

    with st.spinner("Extracting uploaded files…"):
        extraction = process_files(uploads)
    for err in extraction.processing_errors:
        st.warning(f"Could not read {err['file']}: {err['error']}")

    with st.spinner("Generating personas…"):
        try:
            result = generate_personas(campaign, extraction, research, settings=settings)
        except ConfigurationError as e:
            st.error(str(e))
            return
        except InsufficientDataError as e:
            st.error("Not enough source data to ground personas.")
            st.write("Add at least one of: " + ", ".join(e.missing))
            save_run(session_id, {"success": False, "error": str(e), "missing": e.missing})
            return
        except (GenerationCallError, ParseError) as e:
            st.error(f"Generation failed at the {e.stage} stage: {e}")
            save_run(session_id, {"success": False, "error": str(e), "stage": e.stage})
            return

    save_run(session_id, {"success": True, **result.model_dump()})
    st.session_state["last_run"] = (session_id, campaign, result)


if submitted:
    _run()

# ──────────────────────────────────────────────────────────────────────
# Results (kept in session state so the Sheets button survives a rerun)
# ──────────────────────────────────────────────────────────────────────
if "last_run" not in st.session_state:
    st.stop()

session_id, campaign, result = st.session_state["last_run"]

st.metric("Source confidence", f"{result.validation.confidence:.0f}%")
st.write({"sources_used": result.sources_used.model_dump()})

if not result.personas:
    st.warning("Generation produced no usable personas. Try adding more source data.")
    st.stop()

st.success(f"{len(result.personas)} validated persona(s). Run ID: {session_id}")
for p in result.personas:
    with st.expander(f"{p.name} | {p.age} | quality {p.validation.quality_score}"):
        st.write(p.bio)
        st.json(p.model_dump(exclude_none=True), expanded=False)

if settings.spreadsheet_id and settings.service_account_info:
    if st.button("Save to Google Sheets"):
        try:
            ws = open_worksheet(settings)
            out = store_personas(result.personas, campaign, ws, run_id=session_id, sheet_url=settings.sheet_url)
        except Exception as e:
            st.exception(e)
            st.stop()
        st.success(f"Stored {out['rows_added']} rows → {out['sheet_url']}")
else:
    st.info("Configure [google].spreadsheet_id and [service_account] to store personas in Sheets.")
