from __future__ import annotations
from typing import Any, Dict, List, Optional
import datetime as dt
import json
import logging

import gspread
from google.oauth2.service_account import Credentials

from core.config import Settings
from core.errors import PersonaNotFoundError
from core.models import CampaignParameters, StoredPersona, ValidatedPersona

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
RANGE = "A:P"
READY_STATUS = "ready_for_testing"

HEADER = [
    "Name", "Age", "Demographics", "Bio", "Motivations", "Barriers",
    "Communication Style", "Example Quote", "Created", "Case Type", "Personality",
    "Status", "Run ID", "Confidence Score", "Source Citations", "Validation Score",
]

def _mk_client(service_account_info: dict) -> gspread.Client:
    creds = Credentials.from_service_account_info(service_account_info, scopes=SCOPES)
    return gspread.authorize(creds)

def open_worksheet(settings: Settings):
    settings.require_sheets()
    client = _mk_client(settings.service_account_info or {})
    sheet = client.open_by_key(settings.spreadsheet_id)
    return sheet.worksheet(settings.worksheet_title)

def _join(v: Any) -> str:
    if isinstance(v, list):
        return "; ".join(str(x) for x in v)
    return "" if v is None else str(v)

def _split(v: str) -> List[str]:
    return [x for x in (v or "").split("; ") if x]

def _safe_json(v: str) -> Dict[str, Any]:
    try:
        data = json.loads(v) if v else {}
    except (TypeError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}

def _to_int(v: str) -> Optional[int]:
    try:
        return int(float(v))
    except (TypeError, ValueError):
        return None

def _to_float(v: str) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return 0.0

def persona_to_row(persona: ValidatedPersona, campaign: CampaignParameters, timestamp: str, run_id: str = "") -> List[Any]:
    personality = persona.personality.model_dump(exclude_none=True) if persona.personality else {}
    return [
        persona.name or "",
        persona.age if persona.age is not None else "",
        f"{persona.gender or 'N/A'}, {persona.location or 'N/A'}",
        persona.bio or "",
        _join(persona.motivations),
        _join(persona.barriers),
        persona.communication_style or "",
        persona.example_quote or "",
        timestamp,
        campaign.matter,
        json.dumps(personality, ensure_ascii=False),
        READY_STATUS,
        run_id or campaign.session_id or "",
        persona.confidence_score or 0,
        json.dumps(persona.source_citations.model_dump(), ensure_ascii=False),
        persona.validation.quality_score,
    ]

def row_to_persona(row: List[Any]) -> StoredPersona:
    cells = [str(c) if c is not None else "" for c in row] + [""] * (len(HEADER) - len(row))
    return StoredPersona(
        name=cells[0],
        age=_to_int(cells[1]),
        demographics=cells[2],
        bio=cells[3],
        motivations=_split(cells[4]),
        barriers=_split(cells[5]),
        communication_style=cells[6],
        example_quote=cells[7],
        created_date=cells[8],
        case_type=cells[9],
        personality=_safe_json(cells[10]),
        status=cells[11],
        run_id=cells[12],
        confidence_score=_to_float(cells[13]),
        source_citations=_safe_json(cells[14]),
        validation_score=_to_float(cells[15]),
    )

def store_personas(
    personas: List[ValidatedPersona],
    campaign: CampaignParameters,
    worksheet,
    *,
    run_id: str = "",
    sheet_url: str = "",
) -> Dict[str, Any]:
    """Append one row per persona; the sheet is append-only."""
    ts = dt.datetime.now(dt.timezone.utc).isoformat()
    rows = [persona_to_row(p, campaign, ts, run_id) for p in personas]
    if not rows:
        return {"success": True, "rows_added": 0, "sheet_url": sheet_url, "updated_range": ""}
    resp = worksheet.append_rows(rows, value_input_option="USER_ENTERED", table_range=RANGE) or {}
    logger.info("Stored %d personas in Google Sheets", len(rows))
    return {
        "success": True,
        "rows_added": len(rows),
        "sheet_url": sheet_url,
        "updated_range": (resp.get("updates") or {}).get("updatedRange", ""),
    }

def get_all_personas(worksheet) -> List[StoredPersona]:
    rows = worksheet.get_all_values() or []
    out: List[StoredPersona] = []
    for i, row in enumerate(rows[1:], start=2):
        if not row or not str(row[0]).strip():
            logger.warning("Skipping persona row %d: no name", i)
            continue
        out.append(row_to_persona(row))
    logger.info("Retrieved %d personas from Google Sheets", len(out))
    return out

def get_persona_by_name(worksheet, name: str) -> StoredPersona:
    wanted = (name or "").strip().lower()
    for persona in get_all_personas(worksheet):
        if persona.name.strip().lower() == wanted:
            return persona
    raise PersonaNotFoundError(name)
