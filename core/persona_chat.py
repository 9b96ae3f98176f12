# core/persona_chat.py
# Talk to a stored persona (or an ad-hoc one described in free text) through the LLM.

from __future__ import annotations

from typing import Dict, List, Optional, Union

from core.errors import GenerationCallError
from core.models import StoredPersona
from core.synth_utils import Completer

FALLBACK_REPLY = "I understand your question, but I need more time to think about it."

PERSONA_TEMPLATE = """You are {name}, a {age}-year-old ({demographics}).
Background: {bio}
What drives you: {motivations}
What holds you back: {barriers}
How you communicate: {communication_style}
Something you might say: "{example_quote}"

Stay in character. Answer candidly in the first person, in 1-2 short paragraphs.
Never mention that you are an AI or a persona."""

CUSTOM_TEMPLATE = """You are a person with the following attributes:
{attributes}

Stay in character. Answer candidly in the first person, in 1-2 short paragraphs.
Never mention that you are an AI or a persona."""


def persona_system_prompt(persona: Union[StoredPersona, str]) -> str:
    if isinstance(persona, str):
        return CUSTOM_TEMPLATE.format(attributes=persona.strip())
    return PERSONA_TEMPLATE.format(
        name=persona.name,
        age=persona.age if persona.age is not None else "middle-aged",
        demographics=persona.demographics or "details unknown",
        bio=persona.bio or "n/a",
        motivations="; ".join(persona.motivations) or "n/a",
        barriers="; ".join(persona.barriers) or "n/a",
        communication_style=persona.communication_style or "plain and direct",
        example_quote=persona.example_quote or "",
    )


def conversation_key(persona_name: str = "", persona_attributes: str = "") -> str:
    """Session key for one conversation; stored names match case-insensitively."""
    name = (persona_name or "").strip()
    if name:
        return "persona:" + name.lower()
    return "custom:" + " ".join((persona_attributes or "").split())


def build_chat_messages(
    persona: Union[StoredPersona, str],
    message: str,
    history: Optional[List[Dict[str, str]]] = None,
) -> List[Dict[str, str]]:
    if not message or not message.strip():
        raise ValueError("Message is required")
    if isinstance(persona, str) and not persona.strip():
        raise ValueError("Either a stored persona or persona attributes are required")

    msgs = [{"role": "system", "content": persona_system_prompt(persona)}]
    msgs.extend(history or [])
    msgs.append({"role": "user", "content": message.strip()})
    return msgs


def _flatten(msgs: List[Dict[str, str]]) -> str:
    speakers = {"user": "Interviewer", "assistant": "You"}
    parts = []
    for m in msgs:
        role = m.get("role", "user")
        if role == "system":
            parts.append(m["content"])
        else:
            parts.append(f"{speakers.get(role, role)}: {m['content']}")
    parts.append("You:")
    return "\n\n".join(parts)


def chat_with_persona(
    persona: Union[StoredPersona, str],
    message: str,
    completer: Completer,
    history: Optional[List[Dict[str, str]]] = None,
) -> str:
    """Reply in character. The completer receives the conversation as one prompt."""
    prompt = _flatten(build_chat_messages(persona, message, history))
    try:
        reply = completer(prompt)
    except GenerationCallError:
        raise
    except Exception as e:
        raise GenerationCallError(f"{type(e).__name__}: {e}") from e
    return (reply or "").strip() or FALLBACK_REPLY
