# classifier.py
import json
import logging
import re
import textwrap
import threading
from typing import Optional

from pydantic import BaseModel, ValidationError as SchemaError

from config import FAILURE_MODES, Settings
from errors import UpstreamError
from models import Classification, Intent, LeadCreate, Offer

logger = logging.getLogger(__name__)

AI_POINTS = {Intent.HIGH: 50, Intent.MEDIUM: 30, Intent.LOW: 10}
UNKNOWN_LABEL_POINTS = 0

FALLBACK_INTENT = Intent.MEDIUM
FALLBACK_REASONING = "AI scoring unavailable; defaulted to Medium intent."

NOT_PROVIDED = "Not provided"


class IntentReply(BaseModel):
    """Shape the model is told to answer with."""

    intent: str
    reasoning: str

    model_config = {"strict": True}


def build_client(settings: Settings):
    """OpenAI-compatible client, or None when no API key is configured.

    Retries are disabled: one scoring call is one upstream request.
    """
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not set; AI classification will use the failure policy")
        return None
    from openai import OpenAI
    return OpenAI(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout=settings.openai_timeout,
        max_retries=0,
    )


def _or_unknown(value: Optional[str]) -> str:
    return value if value else NOT_PROVIDED


def build_prompt(lead: LeadCreate, offer: Offer) -> str:
    value_props = ", ".join(offer.value_props) or NOT_PROVIDED
    use_cases = ", ".join(offer.ideal_use_cases) or NOT_PROVIDED
    return textwrap.dedent(f"""\
    You are a B2B lead qualification expert. Analyze this prospect's fit for our product/offer.

    Product/Offer: {offer.name}
    Value Propositions: {value_props}
    Ideal Use Cases: {use_cases}

    Prospect:
    - Name: {lead.name}
    - Role: {_or_unknown(lead.role)}
    - Company: {_or_unknown(lead.company)}
    - Industry: {_or_unknown(lead.industry)}
    - Location: {_or_unknown(lead.location)}
    - LinkedIn Bio: {_or_unknown(lead.linkedin_bio)}

    Based on the prospect's role, industry, and background, classify their buying intent as High, Medium, or Low. Provide a 1-2 sentence explanation for your reasoning.

    Respond only with JSON in this exact format:
    {{"intent": "High|Medium|Low", "reasoning": "Your 1-2 sentence explanation"}}
    """)


def parse_reply(text: str) -> IntentReply:
    """Pull the first {...} object out of the reply and validate it.

    Raises UpstreamError on anything that isn't a JSON object with string
    intent and reasoning fields.
    """
    m = re.search(r"\{.*\}", text or "", re.S)
    if not m:
        raise UpstreamError("AI classification failed", details="reply contained no JSON object")
    try:
        return IntentReply.model_validate(json.loads(m.group(0)))
    except (json.JSONDecodeError, SchemaError) as e:
        raise UpstreamError("AI classification failed", details=f"malformed reply: {e}") from e


def points_for_label(label: str) -> int:
    intent = Intent.parse(label)
    if intent is None:
        logger.info("Unrecognised intent label %r scored as %d", label, UNKNOWN_LABEL_POINTS)
        return UNKNOWN_LABEL_POINTS
    return AI_POINTS[intent]


class IntentClassifier:
    """
    Classifies a lead's buying intent with one chat-completion call.

    failure_mode "degrade" turns any upstream problem (no client, network
    error, timeout, malformed reply) into a fallback Classification with
    fallback=True; "fail_fast" raises UpstreamError instead. Fallbacks are
    logged and tallied process-wide in fallback_count.
    """

    def __init__(self, client, model: str = "gpt-4o-mini", failure_mode: str = "degrade"):
        if failure_mode not in FAILURE_MODES:
            raise ValueError(f"unknown failure_mode {failure_mode!r}")
        self.client = client
        self.model = model
        self.failure_mode = failure_mode
        self.fallback_count = 0
        self._count_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "IntentClassifier":
        return cls(build_client(settings), model=settings.openai_model, failure_mode=settings.failure_mode)

    def _complete(self, prompt: str) -> str:
        if self.client is None:
            raise UpstreamError("AI classification failed", details="no AI client configured")
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                response_format={"type": "json_object"},
                max_tokens=150,
                temperature=0.0,
            )
            return resp.choices[0].message.content
        except Exception as e:
            # openai raises APITimeoutError/APIConnectionError/APIStatusError; all are upstream failures
            raise UpstreamError("AI classification failed", details=str(e)) from e

    def classify(self, lead: LeadCreate, offer: Offer) -> Classification:
        try:
            reply = parse_reply(self._complete(build_prompt(lead, offer)))
        except UpstreamError as e:
            if self.failure_mode == "fail_fast":
                raise
            with self._count_lock:
                self.fallback_count += 1
            logger.warning("AI classification fell back for lead %r: %s", lead.name, e.details)
            return Classification(
                ai_score=AI_POINTS[FALLBACK_INTENT],
                intent_label=FALLBACK_INTENT.value,
                reasoning=FALLBACK_REASONING,
                fallback=True,
            )
        return Classification(
            ai_score=points_for_label(reply.intent),
            intent_label=reply.intent.strip(),
            reasoning=reply.reasoning.strip(),
        )
