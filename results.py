# results.py
import csv
import io
from typing import List, Optional

import pandas as pd

from errors import ValidationError
from models import Intent, ScoredLead

EXPORT_COLUMNS = ["Name", "Role", "Company", "Industry", "Location", "Intent", "Score", "Reasoning"]
EXPORT_FILENAME = "lead_scores.csv"


def parse_filters(offer_id: Optional[str] = None, intent: Optional[str] = None, min_score: Optional[str] = None) -> dict:
    """Turn raw query-string values into store filters. Blank values mean no filter."""
    filters = {"offer_id": offer_id or None, "intent": None, "min_score": None}
    if intent:
        filters["intent"] = Intent.parse(intent)
        if filters["intent"] is None:
            raise ValidationError("Invalid intent filter", details="intent must be one of High, Medium, Low")
    if min_score not in (None, ""):
        try:
            filters["min_score"] = int(min_score)
        except (TypeError, ValueError):
            raise ValidationError("Invalid min_score filter", details="min_score must be an integer")
    return filters


def query_results(store, offer_id=None, intent=None, min_score=None) -> List[ScoredLead]:
    """Scored leads matching every given filter, highest score first."""
    rows = store.select_results(offer_id=offer_id, intent=intent, min_score=min_score)
    scored = []
    for row in rows:
        result, lead, offer = row["result"], row["lead"], row["offer"]
        scored.append(ScoredLead(
            name=lead.name if lead else "",
            role=lead.role if lead else None,
            company=lead.company if lead else None,
            industry=lead.industry if lead else None,
            location=lead.location if lead else None,
            intent=result.intent,
            score=result.total_score,
            reasoning=result.reasoning,
            offer_name=offer.name if offer else None,
        ))
    return scored


def to_csv(scored: List[ScoredLead]) -> str:
    """CSV with a fixed header; text fields double-quoted, Score left bare."""
    df = pd.DataFrame(
        [
            [s.name, s.role or "", s.company or "", s.industry or "", s.location or "",
             s.intent.value, s.score, s.reasoning or ""]
            for s in scored
        ],
        columns=EXPORT_COLUMNS,
    )
    df["Score"] = df["Score"].astype(int)
    stream = io.StringIO()
    stream.write(",".join(EXPORT_COLUMNS) + "\n")
    df.to_csv(stream, index=False, header=False, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    return stream.getvalue()


def export_csv(store, offer_id=None, intent=None, min_score=None) -> str:
    return to_csv(query_results(store, offer_id=offer_id, intent=intent, min_score=min_score))
