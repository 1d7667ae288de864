from __future__ import annotations

import json
import logging
from typing import Any

from groq import Groq
from pydantic import ValidationError as SchemaError

from ..ranking.errors import CollaboratorError, MalformedResponseError
from ..ranking.models import ATTRIBUTE_FIELDS, ContextSignals
from .config import DEFAULT_LLM_CONFIG, LLMConfig
from .schemas import RelevancePayload, SignalsPayload

logger = logging.getLogger(__name__)

SIGNALS_PROMPT = (
    "You turn a diner's description of their situation into structured venue "
    "requirements.\n\n"
    "Return ONLY valid JSON in this exact format:\n"
    "{\n"
    '  "hardConstraints": {"<attribute>": true},\n'
    '  "mealPeriod": "breakfast | brunch | lunch | dinner" or null,\n'
    '  "softSignals": ["3 to 6 short phrases describing the desired vibe"],\n'
    '  "occasion": "one short phrase"\n'
    "}\n\n"
    "Allowed attributes: " + ", ".join(ATTRIBUTE_FIELDS) + ".\n"
    "Only set an attribute to true when the user clearly needs it. "
    "Omit attributes you are unsure about; never set one to false."
)

RELEVANCE_PROMPT = (
    "You are a restaurant relevance judge. Given a diner's situation and a list "
    "of candidate restaurants, score how well each one fits on a 0-10 scale "
    "(10 = perfect fit, 5 = neutral, 0 = clearly wrong).\n\n"
    "Return ONLY valid JSON in this exact format:\n"
    '{"scores": {"<restaurant_id>": <number 0-10>}}\n'
    "Score every restaurant in the list and only those restaurants."
)


def _complete_json(
    system_prompt: str,
    user_content: str,
    config: LLMConfig,
    temperature: float,
) -> dict[str, Any]:
    """Single JSON-mode chat completion. Raises on any failure, never retries."""
    if not config.enabled or not config.api_key:
        raise CollaboratorError("LLM is disabled or GROQ_API_KEY is not set")

    try:
        client = Groq(api_key=config.api_key, timeout=config.timeout, max_retries=config.max_retries)
        response = client.chat.completions.create(
            model=config.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            max_tokens=config.max_tokens,
            temperature=temperature,
            response_format={"type": "json_object"},
        )
    except Exception as exc:
        raise CollaboratorError(f"Groq request failed: {exc}") from exc

    try:
        content = response.choices[0].message.content or ""
        parsed = json.loads(content)
    except (IndexError, AttributeError, TypeError, json.JSONDecodeError) as exc:
        raise MalformedResponseError("LLM response was not valid JSON") from exc

    if not isinstance(parsed, dict):
        raise MalformedResponseError("LLM response was not a JSON object")
    return parsed


def extract_signals(
    context_text: str,
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> ContextSignals:
    """
    Ask the LLM for hard constraints, meal period, soft signals and occasion.

    Raises ``CollaboratorError`` on transport failure and
    ``MalformedResponseError`` when the payload does not match the schema.
    """
    parsed = _complete_json(SIGNALS_PROMPT, context_text, config, temperature=0.1)
    try:
        payload = SignalsPayload.model_validate(parsed)
    except SchemaError as exc:
        raise MalformedResponseError(f"Unexpected signals payload: {exc}") from exc
    return payload.to_signals()


def _build_relevance_message(
    context_text: str,
    soft_signals: list[str],
    occasion: str | None,
    candidates: list[dict[str, Any]],
) -> str:
    lines = ["## Diner Situation", f"- Context: {context_text}"]
    if soft_signals:
        lines.append(f"- Looking for: {', '.join(soft_signals)}")
    if occasion:
        lines.append(f"- Occasion: {occasion}")

    lines.append("\n## Candidate Restaurants")
    for c in candidates:
        lines.append(f"### {c['id']} | {c['name']}")
        lines.append(f"- Price tier: {c.get('price_tier', '?')}")
        if c.get("cuisines"):
            lines.append(f"- Cuisines: {', '.join(c['cuisines'])}")
        if c.get("attributes"):
            lines.append(f"- Has: {', '.join(c['attributes'])}")
        for excerpt in c.get("reviews", []):
            lines.append(f'- Review: "{excerpt}"')

    return "\n".join(lines)


def score_relevance(
    context_text: str,
    soft_signals: list[str],
    occasion: str | None,
    candidates: list[dict[str, Any]],
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> dict[str, float]:
    """
    Call Groq LLM to score each candidate summary against the diner's context.

    Returns a dict mapping candidate id -> 0..10 relevance. Ids the LLM
    invents are dropped.
    """
    if not candidates:
        return {}

    parsed = _complete_json(
        RELEVANCE_PROMPT,
        _build_relevance_message(context_text, soft_signals, occasion, candidates),
        config,
        temperature=0.2,
    )
    try:
        payload = RelevancePayload.model_validate(parsed)
    except SchemaError as exc:
        raise MalformedResponseError(f"Unexpected relevance payload: {exc}") from exc

    known = {str(c["id"]) for c in candidates}
    scores = {rid: score for rid, score in payload.scores.items() if rid in known}
    logger.debug("LLM scored %d of %d candidates", len(scores), len(candidates))
    return scores
