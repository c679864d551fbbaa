# models.py
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


HIGH_INTENT_MIN = 70
MEDIUM_INTENT_MIN = 40


class Intent(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def from_score(cls, total_score: int) -> "Intent":
        """Bucket a 0-100 total score. The only place intent is decided."""
        if total_score >= HIGH_INTENT_MIN:
            return cls.HIGH
        if total_score >= MEDIUM_INTENT_MIN:
            return cls.MEDIUM
        return cls.LOW

    @classmethod
    def parse(cls, value: str) -> Optional["Intent"]:
        """Case-insensitive lookup; None for anything that isn't a label."""
        for intent in cls:
            if intent.value.lower() == (value or "").strip().lower():
                return intent
        return None


class OfferCreate(BaseModel):
    name: str
    value_props: Optional[List[str]] = []
    ideal_use_cases: Optional[List[str]] = []

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Offer name is required")
        return v.strip()

    @field_validator("value_props", "ideal_use_cases", mode="before")
    @classmethod
    def null_list_is_empty(cls, v):
        return [] if v is None else v


class Offer(OfferCreate):
    id: str
    created_at: datetime

    model_config = {"frozen": True}


class LeadCreate(BaseModel):
    name: str
    role: Optional[str] = None
    company: Optional[str] = None
    industry: Optional[str] = None
    location: Optional[str] = None
    linkedin_bio: Optional[str] = None


class Lead(LeadCreate):
    id: str
    created_at: datetime

    model_config = {"frozen": True}


class ScoringResultCreate(BaseModel):
    lead_id: str
    offer_id: str
    rule_score: int = Field(ge=0, le=50)
    ai_score: int = Field(ge=0, le=50)
    total_score: int = Field(ge=0, le=100)
    intent: Intent
    reasoning: str

    @model_validator(mode="after")
    def check_totals(self):
        if self.total_score != self.rule_score + self.ai_score:
            raise ValueError("total_score must equal rule_score + ai_score")
        if self.intent != Intent.from_score(self.total_score):
            raise ValueError("intent does not match total_score")
        return self


class ScoringResult(ScoringResultCreate):
    id: str
    created_at: datetime

    model_config = {"frozen": True}


class Classification(BaseModel):
    """What the intent classifier hands back for one lead."""

    ai_score: int = Field(ge=0, le=50)
    intent_label: str
    reasoning: str
    fallback: bool = False


class ScoreRequest(BaseModel):
    offer_id: Optional[str] = None


class ScoredLead(BaseModel):
    """A result row flattened with its lead's display fields and offer name."""

    name: str
    role: Optional[str] = None
    company: Optional[str] = None
    industry: Optional[str] = None
    location: Optional[str] = None
    intent: Intent
    score: int
    reasoning: str
    offer_name: Optional[str] = None
