from __future__ import annotations

from typing import Any, List

import json
import pathlib
import sys

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from adapters.sheets_persona_store import (
    HEADER,
    get_all_personas,
    get_persona_by_name,
    persona_to_row,
    row_to_persona,
    store_personas,
)
from core.errors import PersonaNotFoundError
from core.models import CampaignParameters, ValidatedPersona


class FakeWorksheet:
    """Just the two gspread Worksheet calls the store uses."""

    def __init__(self, rows: List[List[Any]] = None):
        self.rows = [list(HEADER)] + (rows or [])
        self.append_calls = []

    def append_rows(self, values, value_input_option=None, table_range=None):
        self.append_calls.append((values, value_input_option, table_range))
        start = len(self.rows) + 1
        self.rows.extend([[str(c) for c in v] for v in values])
        return {"updates": {"updatedRange": f"Sheet1!A{start}:P{len(self.rows)}"}}

    def get_all_values(self):
        return self.rows


CAMPAIGN = CampaignParameters(
    matter="Hair relaxer", keywords="relaxer", target_description="Women 30-60", session_id="run-1"
)


def _validated(**kw) -> ValidatedPersona:
    base = {
        "name": "Dana Reed",
        "age": 41,
        "gender": "female",
        "location": "Atlanta, GA",
        "bio": "Salon owner.",
        "motivations": ["health", "family"],
        "barriers": ["cost"],
        "personality": {"openness": "high"},
        "communication_style": "warm",
        "example_quote": "My clients trust me.",
        "data_sources": ["mri_file"],
        "confidence_score": 85,
        "source_citations": {"primary_sources": ["mri_file"]},
        "validation": {"complete": True, "quality_score": 80},
    }
    base.update(kw)
    return ValidatedPersona.model_validate(base)


def test_persona_to_row_layout():
    row = persona_to_row(_validated(), CAMPAIGN, "2025-01-01T00:00:00+00:00")

    assert len(row) == len(HEADER) == 16
    assert row[0] == "Dana Reed"
    assert row[2] == "female, Atlanta, GA"
    assert row[4] == "health; family"
    assert json.loads(row[10]) == {"openness": "high"}
    assert row[11] == "ready_for_testing"
    assert row[12] == "run-1"
    assert json.loads(row[14])["primary_sources"] == ["mri_file"]
    assert row[15] == 80


def test_persona_to_row_missing_demographics():
    row = persona_to_row(_validated(gender=None, location=None), CAMPAIGN, "ts")
    assert row[2] == "N/A, N/A"


def test_row_to_persona_tolerates_short_and_bad_rows():
    p = row_to_persona(["Sam", "not a number", "", "bio", "", "a; b", "", "", "", "", "{bad json"])

    assert p.name == "Sam"
    assert p.age is None
    assert p.motivations == []
    assert p.barriers == ["a", "b"]
    assert p.personality == {}
    assert p.validation_score == 0.0


def test_store_then_read_back():
    ws = FakeWorksheet()
    out = store_personas([_validated(), _validated(name="Lee Park")], CAMPAIGN, ws,
                         sheet_url="https://docs.google.com/spreadsheets/d/abc")

    assert out == {
        "success": True,
        "rows_added": 2,
        "sheet_url": "https://docs.google.com/spreadsheets/d/abc",
        "updated_range": "Sheet1!A2:P3",
    }
    assert ws.append_calls[0][1] == "USER_ENTERED"

    personas = get_all_personas(ws)
    assert [p.name for p in personas] == ["Dana Reed", "Lee Park"]
    assert personas[0].age == 41
    assert personas[0].motivations == ["health", "family"]
    assert personas[0].case_type == "Hair relaxer"
    assert personas[0].validation_score == 80.0


def test_store_nothing_skips_append():
    ws = FakeWorksheet()
    out = store_personas([], CAMPAIGN, ws)
    assert out["rows_added"] == 0
    assert ws.append_calls == []


def test_get_all_personas_header_only():
    assert get_all_personas(FakeWorksheet()) == []


def test_get_all_personas_skips_blank_rows():
    ws = FakeWorksheet([["", "30"], ["Kim", "30"]])
    assert [p.name for p in get_all_personas(ws)] == ["Kim"]


def test_get_persona_by_name_case_insensitive():
    ws = FakeWorksheet([["Kim Lee", "30"]])
    assert get_persona_by_name(ws, "kim lee").age == 30


def test_get_persona_by_name_missing():
    with pytest.raises(PersonaNotFoundError):
        get_persona_by_name(FakeWorksheet(), "Nobody")
