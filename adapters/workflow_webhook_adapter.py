# adapters/workflow_webhook_adapter.py
# Hand-off to the external workflow engine (n8n-style webhooks):
#   - persona generation trigger: multipart form with campaign fields + uploaded files
#   - persona chat: JSON message, JSON reply
from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, Mapping, Optional

import httpx
from pydantic import BaseModel

from adapters.document_extractor import UploadedFile
from core.errors import WebhookError

logger = logging.getLogger(__name__)

REQUIRED_CAMPAIGN_FIELDS = ("matter", "keywords", "target_description")
CHAT_FALLBACK = "I understand your question, but I need more time to think about it."


class ChatReply(BaseModel):
    persona_name: str
    persona_response: str
    chat_type: str
    timestamp: str


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def validate_campaign_fields(fields: Mapping[str, Any]) -> None:
    missing = [f for f in REQUIRED_CAMPAIGN_FIELDS if not str(fields.get(f) or "").strip()]
    if missing:
        raise ValueError("Missing required fields: " + ", ".join(missing))


def _post(url: str, client: Optional[httpx.Client], timeout: float, **kwargs) -> httpx.Response:
    # Transport failures carry status 0; no HTTP reply was received.
    try:
        if client is not None:
            return client.post(url, **kwargs)
        with httpx.Client(timeout=timeout) as cli:
            return cli.post(url, **kwargs)
    except httpx.HTTPError as e:
        logger.warning("Workflow webhook unreachable: %s", e)
        raise WebhookError(0, f"{type(e).__name__}: {e}") from e


def trigger_persona_workflow(
    fields: Mapping[str, Any],
    files: Mapping[str, UploadedFile],
    url: str,
    *,
    client: Optional[httpx.Client] = None,
    timeout: float = 60.0,
) -> Dict[str, Any]:
    """
    Forward the campaign form and raw uploads to the workflow engine.
    Returns the parsed JSON reply; a non-JSON 2xx body is treated as an acknowledgement.
    """
    validate_campaign_fields(fields)
    data = {k: str(v) for k, v in fields.items() if v is not None}
    multipart = {
        name: (f.filename, f.content, "text/csv" if f.extension == "csv" else "application/octet-stream")
        for name, f in files.items()
    }
    logger.info("Sending to workflow webhook: fields=%s files=%s", list(data), list(multipart))

    r = _post(url, client, timeout, data=data, files=multipart or None)
    if r.status_code >= 400:
        raise WebhookError(r.status_code, r.text)
    try:
        body = r.json()
    except ValueError:
        body = {"success": True, "message": r.text or "Persona generation started successfully"}
    return body if isinstance(body, dict) else {"success": True, "data": body}


def build_chat_payload(
    message: str,
    persona_name: Optional[str] = None,
    persona_attributes: Optional[str] = None,
) -> Dict[str, Any]:
    if not message or not message.strip():
        raise ValueError("Message is required")
    payload: Dict[str, Any] = {"message": message.strip(), "timestamp": _now()}
    if persona_attributes and persona_attributes.strip():
        payload["persona_attributes"] = persona_attributes.strip()
        payload["chat_type"] = "custom_persona"
    # A named persona wins over ad-hoc attributes.
    if persona_name and persona_name.strip():
        payload["persona_name"] = persona_name.strip()
        payload["chat_type"] = "existing_persona"
    if "chat_type" not in payload:
        raise ValueError("Either persona_name or persona_attributes is required")
    return payload


def send_chat_message(
    message: str,
    url: str,
    *,
    persona_name: Optional[str] = None,
    persona_attributes: Optional[str] = None,
    client: Optional[httpx.Client] = None,
    timeout: float = 30.0,
) -> ChatReply:
    payload = build_chat_payload(message, persona_name, persona_attributes)
    r = _post(url, client, timeout, json=payload)
    if r.status_code >= 400:
        raise WebhookError(r.status_code, r.text)
    try:
        data = r.json()
    except ValueError as e:
        raise WebhookError(502, r.text) from e
    if not isinstance(data, dict):
        raise WebhookError(502, r.text)
    return ChatReply(
        persona_name=data.get("persona_name") or "AI Persona",
        persona_response=data.get("persona_response") or data.get("response") or CHAT_FALLBACK,
        chat_type=payload["chat_type"],
        timestamp=_now(),
    )


__all__ = [
    "ChatReply",
    "validate_campaign_fields",
    "trigger_persona_workflow",
    "build_chat_payload",
    "send_chat_message",
]
