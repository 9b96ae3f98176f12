# core/persona_engine.py
# Evidence-grounded persona synthesis.
# Aggregate sources -> check sufficiency -> build prompt -> one LLM call
# -> parse -> attach citations -> score and filter.

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from textwrap import dedent
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel

from core.config import Settings
from core.errors import GenerationCallError, InsufficientDataError, ParseError
from core.models import (
    CATEGORIES,
    PERSONA_SCHEMA_EXAMPLE,
    REQUIRED_FIELDS,
    CampaignParameters,
    CandidatePersona,
    CategorySummary,
    ConfidenceFactors,
    EvidenceItem,
    GenerationResult,
    PersonaValidation,
    SourceCitations,
    SourceContext,
    SourceSummary,
    SufficiencyResult,
    ValidatedPersona,
)
from core.synth_utils import Completer, make_completer

logger = logging.getLogger(__name__)

# Uploaded document tag -> (category, source tag)
DOCUMENT_TAGS: Dict[str, tuple] = {
    "mri": ("demographic", "mri_file"),
    "targetsmart": ("demographic", "targetsmart_file"),
    "client": ("client", "client_file"),
}

# Research field -> category
RESEARCH_FIELDS: Dict[str, str] = {
    "demographics": "demographic",
    "social_insights": "social",
    "consumer_behavior": "behavior",
}
RESEARCH_SOURCE = "external_research"

SUFFICIENCY_CATEGORIES = ("demographic", "social", "behavior")

CATEGORY_LABELS: Dict[str, str] = {
    "demographic": "DEMOGRAPHIC DATA",
    "social": "SOCIAL INSIGHTS",
    "behavior": "CONSUMER BEHAVIOR DATA",
    "client": "CLIENT DATA",
}

PREVIEW_CHARS = 300
NO_DATA_NOTICE = "No specific source data available - generation may be limited."
MIN_QUALITY_SCORE = 50


# ------------------------ aggregation ------------------------

def _serialize(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        value = value.model_dump()
    return json.dumps(value, ensure_ascii=False, default=str)


def _document_payload(value: Any) -> Any:
    # Extracted documents carry a summary; prefer it over the raw rows.
    if isinstance(value, Mapping) and value.get("summary"):
        return value["summary"]
    return value


def _as_mapping(data: Any) -> Mapping[str, Any]:
    if data is None:
        return {}
    if isinstance(data, BaseModel):
        return data.model_dump()
    if isinstance(data, Mapping):
        return data
    return {}


def build_source_context(uploaded_data: Any = None, research_data: Any = None) -> SourceContext:
    """Merge document extracts and research results into one categorized evidence set."""
    context = SourceContext()

    for key, value in _as_mapping(uploaded_data).items():
        tag = str(key).lower()
        if tag.endswith("_data"):
            tag = tag[: -len("_data")]
        if tag not in DOCUMENT_TAGS or not value:
            continue
        category, source = DOCUMENT_TAGS[tag]
        context.add(EvidenceItem(
            content=_serialize(_document_payload(value)),
            source=source,
            category=category,
        ))

    research = _as_mapping(research_data)
    for field, category in RESEARCH_FIELDS.items():
        value = research.get(field)
        if not value:
            continue
        context.add(EvidenceItem(content=_serialize(value), source=RESEARCH_SOURCE, category=category))

    return context


# ------------------------ sufficiency ------------------------

def validate_data_sufficiency(context: SourceContext) -> SufficiencyResult:
    available = [c for c in SUFFICIENCY_CATEGORIES if context.get(c)]
    missing = [c for c in SUFFICIENCY_CATEGORIES if c not in available]
    return SufficiencyResult(
        sufficient=len(available) >= 1,
        available=available,
        missing=missing,
        confidence=len(available) / len(SUFFICIENCY_CATEGORIES) * 100,
    )


# ------------------------ prompt ------------------------

def _preview(content: str) -> str:
    if len(content) > PREVIEW_CHARS:
        return content[:PREVIEW_CHARS] + "..."
    return content


def format_source_context(context: SourceContext) -> str:
    blocks: List[str] = []
    for category in CATEGORIES:
        items = context.get(category)
        if not items:
            continue
        lines = [f"{CATEGORY_LABELS[category]}:"]
        lines.extend(f"[{item.source}] {_preview(item.content)}" for item in items)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) if blocks else NO_DATA_NOTICE


def build_persona_prompt(campaign: CampaignParameters, context: SourceContext, persona_count: int) -> str:
    schema = json.dumps([PERSONA_SCHEMA_EXAMPLE], indent=2, ensure_ascii=False)
    # Substituted after dedent so multi-line blocks keep their own indentation.
    template = dedent("""
    You are an expert at creating realistic consumer personas for legal advertising campaigns based ONLY on provided data sources.

    CRITICAL REQUIREMENTS:
    - Generate EXACTLY {count} distinct personas
    - Base ALL persona traits on the provided source data below
    - Include specific citations for each trait using [Source: source_name]
    - Do NOT create any traits not found in the source data
    - If insufficient data exists for a trait, omit it rather than fabricate it

    CAMPAIGN DETAILS:
    - Case Type: {matter}
    - Target Audience: {target}
    - Keywords: {keywords}

    SOURCE DATA AVAILABLE:
    @@SOURCES@@

    PERSONA REQUIREMENTS:
    Each persona must be a complete, realistic individual with traits traceable to the source data above.

    REQUIRED JSON STRUCTURE - return ONLY a valid JSON array and nothing else:
    @@SCHEMA@@

    Generate {count} evidence-based personas now:
    """).strip()
    prompt = template.format(
        count=persona_count,
        matter=campaign.matter,
        target=campaign.target_description,
        keywords=campaign.keywords,
    )
    return prompt.replace("@@SOURCES@@", format_source_context(context)).replace("@@SCHEMA@@", schema)


# ------------------------ parsing ------------------------

def parse_persona_response(raw: str) -> List[CandidatePersona]:
    """
    Decode the persona array from free-form generation output.
    Takes the span from the first '[' to the last ']'. Two separate bracketed
    spans in the surrounding prose make that slice invalid; this raises
    ParseError rather than guessing.
    """
    text = (raw or "").strip()
    start, end = text.find("["), text.rfind("]")
    if start == -1 or end <= start:
        raise ParseError("No JSON array found in generation output")

    try:
        decoded = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise ParseError(f"Persona parsing failed: {e}") from e
    if not isinstance(decoded, list):
        raise ParseError("Response is not an array of personas")

    return [CandidatePersona.from_record(rec) for rec in decoded]


# ------------------------ citations ------------------------

def add_source_citations(personas: List[CandidatePersona], context: SourceContext) -> List[CandidatePersona]:
    categories = context.non_empty_categories()
    out: List[CandidatePersona] = []
    for persona in personas:
        primary = list(persona.data_sources)
        citations = SourceCitations(
            primary_sources=primary,
            data_categories=list(categories),
            confidence_factors=ConfidenceFactors(
                source_diversity=len(primary),
                data_points=context.total_sources,
                citation_coverage="cited" if primary else "limited",
            ),
        )
        out.append(persona.model_copy(update={"source_citations": citations}, deep=True))
    return out


# ------------------------ quality ------------------------

def _missing_fields(persona: CandidatePersona) -> List[str]:
    # Absent, empty and zero values all count as missing.
    return [f for f in REQUIRED_FIELDS if not getattr(persona, f, None)]


def score_persona(persona: CandidatePersona) -> PersonaValidation:
    missing = _missing_fields(persona)
    complete = not missing
    score = 0
    if persona.source_citations and persona.source_citations.primary_sources:
        score += 30
    if persona.confidence_score is not None and persona.confidence_score > 70:
        score += 25
    if complete:
        score += 25
    if persona.bio and len(persona.bio) > 100:
        score += 20
    return PersonaValidation(complete=complete, missing_fields=missing, quality_score=score)


def validate_personas(personas: List[CandidatePersona]) -> List[ValidatedPersona]:
    validated: List[ValidatedPersona] = []
    for idx, persona in enumerate(personas, start=1):
        validation = score_persona(persona)
        if not (validation.complete and validation.quality_score >= MIN_QUALITY_SCORE):
            logger.warning(
                "Persona %d (%s) failed validation: missing=%s score=%d",
                idx, persona.name or "unnamed", validation.missing_fields, validation.quality_score,
            )
            continue
        data = persona.model_dump()
        data["source_citations"] = data.get("source_citations") or SourceCitations().model_dump()
        data["validation"] = validation.model_dump()
        validated.append(ValidatedPersona.model_validate(data))
    return validated


# ------------------------ summary + entry point ------------------------

def extract_source_summary(context: SourceContext) -> SourceSummary:
    categories: Dict[str, CategorySummary] = {}
    for category in context.non_empty_categories():
        items = context.get(category)
        categories[category] = CategorySummary(
            document_count=len(items),
            sources=list(dict.fromkeys(i.source for i in items)),
        )
    indicators: List[str] = []
    if context.total_sources >= 3:
        indicators.append("Sufficient data volume")
    if len(categories) >= 2:
        indicators.append("Diverse data sources")
    return SourceSummary(
        total_documents=context.total_sources,
        categories=categories,
        quality_indicators=indicators,
    )


def generate_personas(
    campaign: CampaignParameters,
    uploaded_data: Any = None,
    research_data: Any = None,
    persona_count: Optional[int] = None,
    *,
    settings: Optional[Settings] = None,
    completer: Optional[Completer] = None,
) -> GenerationResult:
    """
    Run the full pipeline once. Raises ConfigurationError, InsufficientDataError,
    GenerationCallError or ParseError; an empty persona list is a valid result.
    """
    if completer is None:
        completer = make_completer(settings or Settings())

    count = persona_count if persona_count is not None else campaign.persona_count
    if count < 1:
        raise ValueError("persona_count must be at least 1")

    logger.info("Generating %d personas for %s", count, campaign.matter)

    context = build_source_context(uploaded_data, research_data)
    validation = validate_data_sufficiency(context)
    if not validation.sufficient:
        raise InsufficientDataError(validation.missing, validation)

    prompt = build_persona_prompt(campaign, context, count)
    try:
        raw = completer(prompt)
    except GenerationCallError:
        raise
    except Exception as e:
        raise GenerationCallError(f"{type(e).__name__}: {e}") from e

    candidates = parse_persona_response(raw)
    cited = add_source_citations(candidates, context)
    personas = validate_personas(cited)
    logger.info("Generated %d validated personas (%d candidates)", len(personas), len(candidates))

    return GenerationResult(
        personas=personas,
        sources_used=extract_source_summary(context),
        validation=validation,
        generation_timestamp=datetime.now(timezone.utc).isoformat(),
    )


__all__ = [
    "build_source_context",
    "validate_data_sufficiency",
    "format_source_context",
    "build_persona_prompt",
    "parse_persona_response",
    "add_source_citations",
    "score_persona",
    "validate_personas",
    "extract_source_summary",
    "generate_personas",
]
