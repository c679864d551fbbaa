"""Tests for pipeline.run_scoring."""
import threading
import time
from unittest.mock import patch

import pytest

from classifier import IntentClassifier
from errors import NotFoundError, PersistenceError, UpstreamError, ValidationError
from models import Intent, LeadCreate, OfferCreate
from pipeline import run_scoring


@pytest.fixture
def leads(store):
    return store.insert_leads([
        LeadCreate(name="Jane", role="VP of Sales", industry="software"),
        LeadCreate(name="Sam", role="Intern", industry="retail"),
    ])


class TestRunScoring:

    def test_scores_every_lead(self, store, classifier, offer, leads):
        summary = run_scoring(store, classifier, offer.id)
        assert summary.results_count == 2
        assert summary.ai_fallbacks == 0

        rows = {row["lead"].name: row["result"] for row in store.select_results()}
        jane = rows["Jane"]
        assert jane.rule_score == 40
        assert jane.ai_score == 50
        assert jane.total_score == 90
        assert jane.intent == Intent.HIGH
        sam = rows["Sam"]
        assert sam.rule_score == 0
        assert sam.total_score == 50
        assert sam.intent == Intent.MEDIUM

    def test_leads_scored_in_store_order(self, store, classifier, openai_client, offer, leads):
        run_scoring(store, classifier, offer.id)
        prompts = [c[1]["messages"][0]["content"] for c in openai_client.chat.completions.create.call_args_list]
        assert "- Name: Jane" in prompts[0]
        assert "- Name: Sam" in prompts[1]

    def test_classifier_failure_degrades_without_aborting(self, store, classifier, openai_client, offer, leads):
        openai_client.chat.completions.create.side_effect = ConnectionError("network down")
        summary = run_scoring(store, classifier, offer.id)
        assert summary.results_count == 2
        assert summary.ai_fallbacks == 2
        for row in store.select_results():
            assert row["result"].ai_score == 30
            assert "AI scoring unavailable" in row["result"].reasoning

    def test_fail_fast_aborts_and_writes_nothing(self, store, openai_client, offer, leads):
        openai_client.chat.completions.create.side_effect = ConnectionError("network down")
        classifier = IntentClassifier(openai_client, failure_mode="fail_fast")
        with pytest.raises(UpstreamError):
            run_scoring(store, classifier, offer.id)
        assert store.select_results() == []

    def test_unknown_offer(self, store, classifier, leads):
        with pytest.raises(NotFoundError):
            run_scoring(store, classifier, "missing")
        assert store.select_results() == []

    def test_missing_offer_id(self, store, classifier):
        with pytest.raises(ValidationError):
            run_scoring(store, classifier, None)

    def test_no_leads(self, store, classifier, offer):
        with pytest.raises(ValidationError) as exc:
            run_scoring(store, classifier, offer.id)
        assert exc.value.message == "No leads found to score"

    def test_store_failure_fails_the_run(self, store, classifier, openai_client, offer, leads):
        with patch.object(store, "insert_results", side_effect=RuntimeError("connection lost")):
            with pytest.raises(PersistenceError) as exc:
                run_scoring(store, classifier, offer.id)
        assert exc.value.details == "connection lost"
        # AI calls were already made for every lead
        assert openai_client.chat.completions.create.call_count == 2
        assert store.select_results() == []

    def test_rescoring_appends(self, store, classifier, offer, leads):
        run_scoring(store, classifier, offer.id)
        run_scoring(store, classifier, offer.id)
        assert len(store.select_results()) == 4

    def test_concurrent_runs_count_only_their_own_fallbacks(self, store, classifier, openai_client,
                                                           offer, leads, chat_response):
        broken = store.create_offer(OfferCreate(name="Broken Offer"))

        def reply(**kwargs):
            time.sleep(0.01)
            if "Product/Offer: Broken Offer" in kwargs["messages"][0]["content"]:
                raise ConnectionError("upstream reset")
            return chat_response({"intent": "High", "reasoning": "Fit."})

        openai_client.chat.completions.create.side_effect = reply
        summaries = {}

        def run(offer_id):
            summaries[offer_id] = run_scoring(store, classifier, offer_id)

        threads = [threading.Thread(target=run, args=(o.id,)) for o in (offer, broken)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert summaries[offer.id].ai_fallbacks == 0
        assert summaries[broken.id].ai_fallbacks == 2
        assert classifier.fallback_count == 2
