# pipeline.py
import logging
from typing import NamedTuple, Tuple

from classifier import IntentClassifier
from errors import NotFoundError, PersistenceError, ValidationError
from models import ScoringResultCreate
from scoring import combine, rule_score

logger = logging.getLogger(__name__)


class RunSummary(NamedTuple):
    results_count: int
    ai_fallbacks: int


def score_lead(lead, offer, classifier: IntentClassifier) -> Tuple[ScoringResultCreate, bool]:
    """Score one lead; the flag is True when the AI part is a fallback."""
    r_points, breakdown = rule_score(lead, offer)
    ai = classifier.classify(lead, offer)
    fields = combine(r_points, breakdown, ai.ai_score, ai.reasoning)
    return ScoringResultCreate(lead_id=lead.id, offer_id=offer.id, **fields), ai.fallback


def run_scoring(store, classifier: IntentClassifier, offer_id: str) -> RunSummary:
    """Score every stored lead against one offer and save the batch.

    Leads are scored in store order. Nothing is written unless every lead
    was scored, and then all results go in a single insert.
    """
    if not offer_id:
        raise ValidationError("offer_id is required")
    offer = store.get_offer(offer_id)
    if offer is None:
        raise NotFoundError("Offer not found")

    leads = store.list_leads(newest_first=False)
    if not leads:
        raise ValidationError("No leads found to score")

    scored = [score_lead(lead, offer, classifier) for lead in leads]
    results = [result for result, _ in scored]
    fallbacks = sum(1 for _, fell_back in scored if fell_back)

    try:
        saved = store.insert_results(results)
    except PersistenceError:
        logger.error("Discarding %d scored results for offer %s: batch insert failed", len(results), offer_id)
        raise
    except Exception as e:
        logger.exception("Scoring results insert failed for offer %s", offer_id)
        raise PersistenceError("Failed to save scoring results", details=str(e)) from e

    logger.info("Scored %d leads against offer %r (%d AI fallbacks)", len(saved), offer.name, fallbacks)
    return RunSummary(len(saved), fallbacks)
