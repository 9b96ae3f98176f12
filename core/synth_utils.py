# core/synth_utils.py
# OpenAI chat-completions helper used as the generation collaborator.
# - OpenAI Python SDK v1.x.
# - Credentials come from an injected Settings object, never from the environment here.
# - Exposes:
#     call_gpt(messages, settings=...)
#     make_completer(settings)

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List

from openai import OpenAI

from core.config import Settings
from core.errors import GenerationCallError

logger = logging.getLogger(__name__)

Completer = Callable[[str], str]

_clients: Dict[str, OpenAI] = {}


def _client(api_key: str) -> OpenAI:
    cli = _clients.get(api_key)
    if cli is None:
        cli = OpenAI(api_key=api_key)
        _clients[api_key] = cli
    return cli


def call_gpt(
    messages: List[Dict[str, str]],
    *,
    settings: Settings,
    retries: int = 0,
    response_format_json: bool = False,
) -> str:
    """
    Chat completion returning the assistant content as a string.
    The persona pipeline calls this with retries=0; any failure surfaces as GenerationCallError.
    """
    cli = _client(settings.require_openai_key())
    for attempt in range(retries + 1):
        try:
            kwargs: Dict[str, Any] = {
                "model": settings.openai_model,
                "messages": messages,
                "temperature": settings.temperature,
                "max_tokens": settings.max_tokens,
            }
            if response_format_json:
                kwargs["response_format"] = {"type": "json_object"}
            resp = cli.chat.completions.create(**kwargs)
            return (resp.choices[0].message.content or "").strip()
        except Exception as e:
            if attempt >= retries:
                raise GenerationCallError(f"{type(e).__name__}: {e}") from e
            logger.warning("OpenAI call failed (attempt %d): %s", attempt + 1, e)
            time.sleep(0.8 * (attempt + 1))
    raise GenerationCallError("OpenAI call made no attempts")


def make_completer(settings: Settings) -> Completer:
    """Single-prompt completion function bound to the given settings."""
    settings.require_openai_key()

    def complete(prompt: str) -> str:
        return call_gpt([{"role": "user", "content": prompt}], settings=settings)

    return complete


__all__ = ["Completer", "call_gpt", "make_completer"]
