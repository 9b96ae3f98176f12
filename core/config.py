# core/config.py
# Explicit settings for the persona pipeline and its collaborators.
# - Reads env vars first, then Streamlit secrets (guarded; missing secrets never raise).
# - The pipeline only ever sees a Settings instance; nothing below it reads os.environ.

from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel

from core.errors import ConfigurationError

# Streamlit is optional; used only to read secrets if available.
try:
    import streamlit as st  # type: ignore
except Exception:
    st = None  # type: ignore


class Settings(BaseModel):
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    temperature: float = 0.3
    max_tokens: int = 4000

    spreadsheet_id: Optional[str] = None
    worksheet_title: str = "Sheet1"
    service_account_info: Optional[Dict[str, Any]] = None

    generate_webhook_url: Optional[str] = None
    chat_webhook_url: Optional[str] = None
    request_timeout: float = 30.0

    default_persona_count: int = 10

    def require_openai_key(self) -> str:
        if not self.openai_api_key:
            raise ConfigurationError(
                "OpenAI API key not found. Set env OPENAI_API_KEY or st.secrets['openai']['api_key']."
            )
        return self.openai_api_key

    def require_sheets(self) -> None:
        missing = []
        if not self.spreadsheet_id:
            missing.append("spreadsheet_id")
        if not self.service_account_info:
            missing.append("service_account_info")
        if missing:
            raise ConfigurationError("Google Sheets not configured: " + ", ".join(missing))

    @property
    def sheet_url(self) -> str:
        return f"https://docs.google.com/spreadsheets/d/{self.spreadsheet_id or ''}"


# --------------------------- lookup helpers ---------------------------

def _nested_get(mapping: Any, keys: List[str]) -> Optional[Any]:
    cur = mapping
    for k in keys:
        try:
            cur = cur[k]  # type: ignore[index]
        except Exception:
            return None
        if cur is None:
            return None
    return cur


def _streamlit_secrets() -> Any:
    if st is None:
        return None
    try:
        # Touching st.secrets parses secrets.toml; absent file raises.
        return dict(st.secrets)  # type: ignore[arg-type]
    except Exception:
        return None


def _first(environ: Mapping[str, str], secrets: Any, env_names: List[str], secret_paths: List[List[str]]) -> Optional[str]:
    for name in env_names:
        val = environ.get(name)
        if isinstance(val, str) and val.strip():
            return val.strip()
    if secrets is not None:
        for path in secret_paths:
            v = _nested_get(secrets, path)
            if isinstance(v, str) and v.strip():
                return v.strip()
    return None


def _service_account(environ: Mapping[str, str], secrets: Any) -> Optional[Dict[str, Any]]:
    raw = environ.get("SERVICE_ACCOUNT_JSON")
    if raw:
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"SERVICE_ACCOUNT_JSON is not valid JSON: {e}") from e

    # Individual GOOGLE_* variables, private key with escaped newlines.
    email = environ.get("GOOGLE_CLIENT_EMAIL")
    key = environ.get("GOOGLE_PRIVATE_KEY")
    if email and key:
        return {
            "type": "service_account",
            "project_id": environ.get("GOOGLE_PROJECT_ID", ""),
            "private_key_id": environ.get("GOOGLE_PRIVATE_KEY_ID", ""),
            "private_key": key.replace("\\n", "\n"),
            "client_email": email,
            "client_id": environ.get("GOOGLE_CLIENT_ID", ""),
            "token_uri": "https://oauth2.googleapis.com/token",
        }

    if secrets is not None:
        sa = _nested_get(secrets, ["service_account"])
        if sa:
            return dict(sa)
    return None


def load_settings(environ: Optional[Mapping[str, str]] = None, secrets: Any = None) -> Settings:
    """Build Settings from env vars, then Streamlit secrets."""
    env = os.environ if environ is None else environ
    sec = _streamlit_secrets() if secrets is None else secrets

    values: Dict[str, Any] = {
        "openai_api_key": _first(env, sec, ["OPENAI_API_KEY", "openai_api_key"],
                                 [["openai", "api_key"], ["OPENAI_API_KEY"]]),
        "spreadsheet_id": _first(env, sec, ["GOOGLE_SHEETS_ID", "GOOGLE_SHEETS_SPREADSHEET_ID"],
                                 [["google", "spreadsheet_id"]]),
        "generate_webhook_url": _first(env, sec, ["N8N_GENERATE_PERSONAS_WEBHOOK"],
                                       [["webhooks", "generate_personas"]]),
        "chat_webhook_url": _first(env, sec, ["N8N_CHAT_PERSONA_WEBHOOK"],
                                   [["webhooks", "chat_persona"]]),
        "service_account_info": _service_account(env, sec),
    }
    model = _first(env, sec, ["OPENAI_MODEL"], [["openai", "model"]])
    if model:
        values["openai_model"] = model
    worksheet = _first(env, sec, ["GOOGLE_SHEETS_WORKSHEET"], [["google", "worksheet"]])
    if worksheet:
        values["worksheet_title"] = worksheet
    count = _first(env, sec, ["DEFAULT_PERSONA_COUNT"], [])
    if count:
        try:
            values["default_persona_count"] = int(count)
        except ValueError as e:
            raise ConfigurationError(f"DEFAULT_PERSONA_COUNT must be an integer, got {count!r}") from e

    return Settings(**values)


def settings_diagnostics(settings: Settings) -> Dict[str, Any]:
    """Lengths and presence only; never the values themselves."""
    return {
        "openai_api_key_length": len(settings.openai_api_key or ""),
        "openai_model": settings.openai_model,
        "spreadsheet_id_set": bool(settings.spreadsheet_id),
        "service_account_email": (settings.service_account_info or {}).get("client_email", ""),
        "generate_webhook_set": bool(settings.generate_webhook_url),
        "chat_webhook_set": bool(settings.chat_webhook_url),
    }


__all__ = ["Settings", "load_settings", "settings_diagnostics"]
