# core/errors.py
# Typed failures for the persona pipeline. Each one is terminal for the request;
# nothing here is retried.

from __future__ import annotations

from typing import List, Optional

from core.models import SufficiencyResult


class PersonaPipelineError(Exception):
    stage = "pipeline"


class ConfigurationError(PersonaPipelineError):
    stage = "configuration"


class InsufficientDataError(PersonaPipelineError):
    stage = "sufficiency"

    def __init__(self, missing: List[str], validation: Optional[SufficiencyResult] = None):
        self.missing = list(missing)
        self.validation = validation
        super().__init__(
            "Insufficient data for persona generation: " + ", ".join(self.missing)
        )


class GenerationCallError(PersonaPipelineError):
    stage = "generation"


class ParseError(PersonaPipelineError):
    stage = "parse"


class WebhookError(PersonaPipelineError):
    stage = "webhook"

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Workflow webhook failed: {status_code} - {body[:200]}")


class PersonaNotFoundError(LookupError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Persona not found: {name}")
