# storage.py
import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from errors import PersistenceError
from models import (
    Intent,
    Lead,
    LeadCreate,
    Offer,
    OfferCreate,
    ScoringResult,
    ScoringResultCreate,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class MemoryStore:
    """In-process store for offers, leads and scoring results.

    Batch inserts are all-or-nothing. Listing methods return newest first,
    using insertion order to break created_at ties.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._offers: Dict[str, Offer] = {}
        self._leads: Dict[str, Lead] = {}
        self._results: List[ScoringResult] = []

    # --- offers ---
    def create_offer(self, offer: OfferCreate) -> Offer:
        saved = Offer(id=_new_id(), created_at=_now(), **offer.model_dump())
        with self._lock:
            self._offers[saved.id] = saved
        return saved

    def get_offer(self, offer_id: str) -> Optional[Offer]:
        with self._lock:
            return self._offers.get(offer_id)

    def list_offers(self) -> List[Offer]:
        with self._lock:
            return list(reversed(list(self._offers.values())))

    # --- leads ---
    def insert_leads(self, leads: List[LeadCreate]) -> List[Lead]:
        created_at = _now()
        saved = [Lead(id=_new_id(), created_at=created_at, **lead.model_dump()) for lead in leads]
        with self._lock:
            for lead in saved:
                self._leads[lead.id] = lead
        return saved

    def list_leads(self, newest_first: bool = True) -> List[Lead]:
        with self._lock:
            leads = list(self._leads.values())
        return list(reversed(leads)) if newest_first else leads

    # --- scoring results ---
    def insert_results(self, results: List[ScoringResultCreate]) -> List[ScoringResult]:
        with self._lock:
            for result in results:
                if result.lead_id not in self._leads:
                    raise PersistenceError("Failed to save scoring results", details=f"unknown lead_id {result.lead_id}")
                if result.offer_id not in self._offers:
                    raise PersistenceError("Failed to save scoring results", details=f"unknown offer_id {result.offer_id}")
            created_at = _now()
            saved = [ScoringResult(id=_new_id(), created_at=created_at, **r.model_dump()) for r in results]
            self._results.extend(saved)
        return saved

    def select_results(
        self,
        offer_id: Optional[str] = None,
        intent: Optional[Intent] = None,
        min_score: Optional[int] = None,
    ) -> List[dict]:
        """Results joined with their lead and offer, highest total_score first."""
        with self._lock:
            rows = [
                {"result": r, "lead": self._leads.get(r.lead_id), "offer": self._offers.get(r.offer_id)}
                for r in self._results
                if (offer_id is None or r.offer_id == offer_id)
                and (intent is None or r.intent == intent)
                and (min_score is None or r.total_score >= min_score)
            ]
        rows.sort(key=lambda row: row["result"].total_score, reverse=True)
        return rows
