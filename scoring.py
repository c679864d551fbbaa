# scoring.py
from typing import Dict, List, Tuple

from models import Intent, LeadCreate, Offer

DECISION_MAKER_ROLES = [
    "ceo", "cto", "cfo", "coo", "chief", "president", "vp", "vice president",
    "head of", "director", "owner", "founder", "partner",
]
INFLUENCER_ROLES = ["manager", "lead", "senior", "principal", "architect", "specialist"]

ROLE_DECISION_MAKER = 20
ROLE_INFLUENCER = 10
INDUSTRY_EXACT = 20
INDUSTRY_ADJACENT = 10
COMPLETENESS = 10


# --- Rule layer (max 50) ---
def role_points(role: str) -> int:
    role = (role or "").lower()
    if any(k in role for k in DECISION_MAKER_ROLES):
        return ROLE_DECISION_MAKER
    if any(k in role for k in INFLUENCER_ROLES):
        return ROLE_INFLUENCER
    return 0


def _overlaps(a: str, b: str) -> bool:
    return a in b or b in a


def industry_points(industry: str, ideal_use_cases: List[str]) -> int:
    industry = (industry or "").strip().lower()
    use_cases = [u.strip().lower() for u in ideal_use_cases if u and u.strip()]
    # an empty string is a substring of everything, so a blank industry never matches
    if not industry or not use_cases:
        return 0
    if any(_overlaps(use_case, industry) for use_case in use_cases):
        return INDUSTRY_EXACT
    if any(_overlaps(keyword, industry) for use_case in use_cases for keyword in use_case.split()):
        return INDUSTRY_ADJACENT
    return 0


def completeness_points(lead: LeadCreate) -> int:
    if all([lead.name, lead.role, lead.company, lead.industry, lead.location, lead.linkedin_bio]):
        return COMPLETENESS
    return 0


def rule_score(lead: LeadCreate, offer: Offer) -> Tuple[int, Dict[str, int]]:
    """Return (rule_points, breakdown) where breakdown holds the role,
    industry and completeness sub-scores that sum to rule_points."""
    breakdown = {
        "role": role_points(lead.role),
        "industry": industry_points(lead.industry, offer.ideal_use_cases),
        "completeness": completeness_points(lead),
    }
    return sum(breakdown.values()), breakdown


# --- combine rule + AI (max 100) ---
def combine(rule_points: int, breakdown: Dict[str, int], ai_points: int, ai_reasoning: str) -> dict:
    total = rule_points + ai_points
    reasoning = (
        f"Rule Score: {rule_points}/50 (Role: {breakdown['role']}, "
        f"Industry: {breakdown['industry']}, Completeness: {breakdown['completeness']}). "
        f"AI Score: {ai_points}/50. {ai_reasoning}"
    ).strip()
    return {
        "rule_score": rule_points,
        "ai_score": ai_points,
        "total_score": total,
        "intent": Intent.from_score(total),
        "reasoning": reasoning,
    }
