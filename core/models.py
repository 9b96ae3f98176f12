from __future__ import annotations

import json
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

Category = Literal["demographic", "social", "behavior", "client"]

# Render order for prompts and summaries.
CATEGORIES: tuple = ("demographic", "social", "behavior", "client")

# Output contract shared by the prompt builder and the response parser.
PERSONA_SCHEMA_EXAMPLE: Dict[str, Any] = {
    "name": "realistic name appropriate for demographics",
    "age": "number_from_source_data",
    "gender": "from_demographic_data",
    "location": "City, State from geographic data",
    "bio": "background based on source patterns with [Source: X] citations",
    "motivations": ["array of motivations from source data"],
    "barriers": ["array of barriers from source data"],
    "personality": {
        "openness": "very_low|low|moderate|high|very_high",
        "conscientiousness": "very_low|low|moderate|high|very_high",
        "extraversion": "very_low|low|moderate|high|very_high",
        "agreeableness": "very_low|low|moderate|high|very_high",
        "neuroticism": "very_low|low|moderate|high|very_high",
    },
    "communication_style": "style based on source insights",
    "example_quote": "quote reflecting this person's authentic voice",
    "data_sources": ["list of source files/categories used for this persona"],
    "confidence_score": "number_0_to_100_based_on_source_data_quality",
}

REQUIRED_FIELDS: tuple = ("name", "age", "bio", "motivations", "barriers", "communication_style")


class EvidenceItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str
    source: str
    category: Category


class SourceContext(BaseModel):
    """Categorized evidence for one generation request."""

    items: Dict[str, List[EvidenceItem]] = Field(
        default_factory=lambda: {c: [] for c in CATEGORIES}
    )

    def add(self, item: EvidenceItem) -> None:
        self.items.setdefault(item.category, []).append(item)

    def get(self, category: str) -> List[EvidenceItem]:
        return list(self.items.get(category, []))

    def non_empty_categories(self) -> List[str]:
        return [c for c in CATEGORIES if self.items.get(c)]

    @property
    def total_sources(self) -> int:
        return sum(len(v) for v in self.items.values())


class CampaignParameters(BaseModel):
    matter: str
    keywords: str
    target_description: str
    persona_count: int = Field(default=10, gt=0)
    email: Optional[str] = None
    session_id: Optional[str] = None


class SufficiencyResult(BaseModel):
    sufficient: bool = False
    available: List[str] = Field(default_factory=list)
    missing: List[str] = Field(default_factory=list)
    confidence: float = 0.0


class Personality(BaseModel):
    model_config = ConfigDict(extra="allow")

    openness: Optional[str] = None
    conscientiousness: Optional[str] = None
    extraversion: Optional[str] = None
    agreeableness: Optional[str] = None
    neuroticism: Optional[str] = None


class ConfidenceFactors(BaseModel):
    source_diversity: int = 0
    data_points: int = 0
    citation_coverage: Literal["cited", "limited"] = "limited"


class SourceCitations(BaseModel):
    primary_sources: List[str] = Field(default_factory=list)
    data_categories: List[str] = Field(default_factory=list)
    confidence_factors: ConfidenceFactors = Field(default_factory=ConfidenceFactors)


class PersonaValidation(BaseModel):
    complete: bool = True
    missing_fields: List[str] = Field(default_factory=list)
    quality_score: int = 0


def _as_text(v: Any) -> Any:
    if v is None or isinstance(v, str):
        return v
    if isinstance(v, (dict, list, tuple)):
        return json.dumps(v, ensure_ascii=False, default=str) if v else ""
    return str(v)


def _as_list(v: Any) -> Any:
    # A lone string is one entry, not a character sequence.
    if isinstance(v, str):
        return [v] if v.strip() else []
    if isinstance(v, (list, tuple)):
        return [t for t in (_as_text(item) for item in v) if t]
    return v


class CandidatePersona(BaseModel):
    """A persona decoded from generation output; every field may be absent."""

    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    age: Optional[Union[int, float, str]] = None
    gender: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    motivations: List[str] = Field(default_factory=list)
    barriers: List[str] = Field(default_factory=list)
    personality: Optional[Personality] = None
    communication_style: Optional[str] = None
    example_quote: Optional[str] = None
    data_sources: List[str] = Field(default_factory=list)
    confidence_score: Optional[float] = None

    source_citations: Optional[SourceCitations] = None
    invalid_fields: List[str] = Field(default_factory=list)

    @field_validator("motivations", "barriers", "data_sources", mode="before")
    @classmethod
    def _listify(cls, v: Any) -> Any:
        if v is None:
            return []
        return _as_list(v)

    @field_validator("name", "gender", "location", "bio", "communication_style", "example_quote", mode="before")
    @classmethod
    def _textify(cls, v: Any) -> Any:
        return _as_text(v)

    @field_validator("age", mode="before")
    @classmethod
    def _age_scalar(cls, v: Any) -> Any:
        # Structured ages (ranges, objects) are kept as their JSON text.
        if isinstance(v, (dict, list, tuple)):
            return _as_text(v)
        return v

    @classmethod
    def from_record(cls, record: Any) -> "CandidatePersona":
        """Coerce one decoded record, dropping fields whose values have the wrong type."""
        if not isinstance(record, dict):
            return cls(invalid_fields=["<record>"])
        data = {k: v for k, v in record.items() if k not in ("source_citations", "validation", "invalid_fields")}
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            bad = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            cleaned = {k: v for k, v in data.items() if k not in bad}
            persona = cls.model_validate(cleaned)
            persona.invalid_fields = bad
            return persona


class ValidatedPersona(CandidatePersona):
    source_citations: SourceCitations = Field(default_factory=SourceCitations)
    validation: PersonaValidation = Field(default_factory=PersonaValidation)


class CategorySummary(BaseModel):
    document_count: int
    sources: List[str] = Field(default_factory=list)


class SourceSummary(BaseModel):
    total_documents: int = 0
    categories: Dict[str, CategorySummary] = Field(default_factory=dict)
    quality_indicators: List[str] = Field(default_factory=list)


class GenerationResult(BaseModel):
    personas: List[ValidatedPersona] = Field(default_factory=list)
    sources_used: SourceSummary = Field(default_factory=SourceSummary)
    validation: SufficiencyResult = Field(default_factory=SufficiencyResult)
    generation_timestamp: str


class StoredPersona(BaseModel):
    """A persona read back from the spreadsheet row store."""

    name: str
    age: Optional[int] = None
    demographics: str = ""
    bio: str = ""
    motivations: List[str] = Field(default_factory=list)
    barriers: List[str] = Field(default_factory=list)
    communication_style: str = ""
    example_quote: str = ""
    created_date: str = ""
    case_type: str = ""
    personality: Dict[str, Any] = Field(default_factory=dict)
    status: str = ""
    run_id: str = ""
    confidence_score: float = 0.0
    source_citations: Dict[str, Any] = Field(default_factory=dict)
    validation_score: float = 0.0
