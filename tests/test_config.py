from __future__ import annotations

import json
import pathlib
import sys

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from core.config import Settings, load_settings, settings_diagnostics
from core.errors import ConfigurationError


def test_env_takes_precedence_over_secrets():
    env = {"OPENAI_API_KEY": " sk-env ", "GOOGLE_SHEETS_ID": "sheet-env"}
    secrets = {"openai": {"api_key": "sk-secret"}, "google": {"spreadsheet_id": "sheet-secret"}}
    s = load_settings(environ=env, secrets=secrets)
    assert s.openai_api_key == "sk-env"
    assert s.spreadsheet_id == "sheet-env"


def test_secrets_fallback():
    secrets = {
        "openai": {"api_key": "sk-secret", "model": "gpt-4o"},
        "google": {"spreadsheet_id": "sheet-secret", "worksheet": "Personas"},
        "webhooks": {"chat_persona": "https://hooks.example.com/chat"},
        "service_account": {"client_email": "bot@example.iam.gserviceaccount.com"},
    }
    s = load_settings(environ={}, secrets=secrets)
    assert s.openai_api_key == "sk-secret"
    assert s.openai_model == "gpt-4o"
    assert s.worksheet_title == "Personas"
    assert s.chat_webhook_url == "https://hooks.example.com/chat"
    assert s.service_account_info["client_email"].startswith("bot@")


def test_defaults_when_nothing_configured():
    s = load_settings(environ={}, secrets={})
    assert s.openai_api_key is None
    assert s.openai_model == "gpt-4o-mini"
    assert s.default_persona_count == 10
    with pytest.raises(ConfigurationError):
        s.require_openai_key()
    with pytest.raises(ConfigurationError) as exc:
        s.require_sheets()
    assert "spreadsheet_id" in str(exc.value)


def test_service_account_from_env_parts():
    env = {
        "GOOGLE_CLIENT_EMAIL": "bot@example.iam.gserviceaccount.com",
        "GOOGLE_PRIVATE_KEY": "-----BEGIN-----\\nabc\\n-----END-----",
        "GOOGLE_PROJECT_ID": "proj",
    }
    s = load_settings(environ=env, secrets={})
    assert s.service_account_info["private_key"] == "-----BEGIN-----\nabc\n-----END-----"
    assert s.service_account_info["type"] == "service_account"


def test_service_account_json_env():
    env = {"SERVICE_ACCOUNT_JSON": json.dumps({"client_email": "a@b"})}
    assert load_settings(environ=env, secrets={}).service_account_info == {"client_email": "a@b"}
    with pytest.raises(ConfigurationError):
        load_settings(environ={"SERVICE_ACCOUNT_JSON": "{nope"}, secrets={})


def test_bad_persona_count():
    with pytest.raises(ConfigurationError):
        load_settings(environ={"DEFAULT_PERSONA_COUNT": "many"}, secrets={})


def test_diagnostics_hide_values():
    s = Settings(openai_api_key="sk-12345", spreadsheet_id="abc")
    diag = settings_diagnostics(s)
    assert diag["openai_api_key_length"] == 8
    assert "sk-12345" not in json.dumps(diag)
    assert s.sheet_url == "https://docs.google.com/spreadsheets/d/abc"
