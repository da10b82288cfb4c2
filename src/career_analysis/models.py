"""
Pydantic data models for career profiles, analyses and persisted reports.

The wire format (LLM output and stored documents) uses camelCase keys, while
the Python attributes are snake_case. Every model accepts both spellings on
input and should be dumped with ``by_alias=True`` when leaving the process.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    field_validator,
)
from pydantic.alias_generators import to_camel

from .utils.constants import LOCATIONS

Location = Literal["Bangladesh", "International"]
EducationLevel = Literal["SSC", "HSC", "Diploma", "Honours", "Masters", "PhD"]
SkillDifficulty = Literal["Beginner", "Intermediate", "Expert"]
RiskLevel = Literal["Low", "Medium", "High"]


class CamelModel(BaseModel):
    """Base model mapping snake_case attributes to camelCase wire keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        """Returns a JSON-compatible dict using the camelCase wire keys."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# USER PROFILE
# =============================================================================
class UserProfile(CamelModel):
    """The intake data entered by the user on the profile form."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True
    )

    target_job: str = Field(min_length=1)
    location: List[Location] = Field(min_length=1)
    education: EducationLevel
    skills: str = Field(min_length=1)
    experience: Optional[NonNegativeInt] = None

    @field_validator("location")
    @classmethod
    def _canonical_locations(cls, value: List[str]) -> List[str]:
        """Deduplicates the selection and keeps Bangladesh before International."""
        return [loc for loc in LOCATIONS if loc in value]

    @property
    def location_text(self) -> str:
        return ", ".join(self.location)


# =============================================================================
# ANALYSIS PAYLOAD
# =============================================================================
class JobPossibility(CamelModel):
    bangladesh: NonNegativeInt
    international: NonNegativeInt
    none: NonNegativeInt

    @property
    def total(self) -> int:
        return self.bangladesh + self.international + self.none


class EducationGap(CamelModel):
    required: str
    user_has: str
    gap: str
    steps: List[str] = Field(default_factory=list)


class MissingSkill(CamelModel):
    skill: str
    difficulty: SkillDifficulty
    time_to_learn: str


class SkillsGap(CamelModel):
    missing: List[MissingSkill] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=list)


class MigrationGuide(CamelModel):
    language_requirements: str
    visa_requirements: str
    certifications: List[str] = Field(default_factory=list)


class RoadmapPhase(CamelModel):
    duration: str
    tasks: List[str] = Field(default_factory=list)


class Roadmap(CamelModel):
    short_term: RoadmapPhase
    mid_term: RoadmapPhase
    long_term: RoadmapPhase


class RiskForecast(CamelModel):
    level: RiskLevel
    explanation: str


class CareerAnalysis(CamelModel):
    """
    The structured analysis payload produced by the language model.

    The three job possibility values are asked to sum to 100 by the prompt,
    but that is not enforced here: a payload with another total is valid.
    """

    job_possibility: JobPossibility
    education_gap: EducationGap
    skills_gap: SkillsGap
    migration_guide: Optional[MigrationGuide] = None
    roadmap: Roadmap
    current_opportunities: List[str] = Field(default_factory=list)
    future_opportunities: List[str] = Field(default_factory=list)
    risk_forecast: RiskForecast


# =============================================================================
# PERSISTED REPORT
# =============================================================================
class CareerReport(UserProfile, CareerAnalysis):
    """
    One persisted career analysis: the profile fields, the analysis fields,
    the owner and the store-assigned id and timestamp.
    """

    id: str
    owner_id: str = Field(alias="uid")
    created_at: Optional[datetime] = None

    @property
    def profile(self) -> UserProfile:
        return UserProfile.model_validate(
            self.model_dump(include=set(UserProfile.model_fields))
        )

    @property
    def analysis(self) -> CareerAnalysis:
        return CareerAnalysis.model_validate(
            self.model_dump(include=set(CareerAnalysis.model_fields))
        )
