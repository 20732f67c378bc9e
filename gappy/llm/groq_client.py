from __future__ import annotations

import json
import logging
from typing import Any

from groq import Groq

from ..quiz.travel_types import TravelTypeInfo
from ..config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)


def _system_prompt(travel_type: TravelTypeInfo) -> str:
    tone = ", ".join(travel_type.keywords[:3]) or "calm, clear"
    return "\n\n".join([
        "You are an AI travel partner for travelers exploring Shibuya.",
        f"Persona: {travel_type.name} {travel_type.emoji}: {travel_type.short_description}.",
        f"Voice: {tone}; concise, friendly, action-first.",
        "Given a list of nearby candidate places, re-rank them from best to worst "
        "match for this traveler and give a short, friendly one-sentence reason for each.",
        "Return ONLY valid JSON in this exact format:\n"
        '{"recommendations": [{"place_id": "<place_id>", "reason": "<one sentence>"}]}\n'
        "Include only places from the provided list. Order from best match to worst.",
    ])


def _build_user_message(
    travel_type: TravelTypeInfo,
    places: list[dict[str, Any]],
) -> str:
    lines = ["## Traveler"]
    lines.append(f"- Type: {travel_type.code} ({travel_type.name})")
    lines.append(f"- About: {travel_type.description}")
    lines.append(f"- Keywords: {', '.join(travel_type.keywords)}")

    lines.append("\n## Candidate Places")
    lines.append("| ID | Name | Types | Rating | Distance (m) |")
    lines.append("|---|---|---|---|---|")
    for p in places:
        types_str = ", ".join(p.get("types", []))
        lines.append(
            f"| {p['place_id']} | {p['name']} | {types_str} "
            f"| {p.get('rating', 'N/A')} | {round(p.get('distance_m', 0))} |"
        )

    return "\n".join(lines)


def rank_and_explain(
    travel_type: TravelTypeInfo,
    places: list[dict[str, Any]],
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> dict[str, str]:
    """
    Call Groq LLM to re-rank places for a travel type and explain each pick.

    Returns a dict mapping place id -> reason string, in the model's order.
    Returns empty dict on any failure (timeout, bad JSON, API error).
    """
    if not config.enabled or not config.api_key:
        return {}

    if not places:
        return {}

    try:
        client = Groq(api_key=config.api_key, timeout=config.timeout)
        response = client.chat.completions.create(
            model=config.model,
            messages=[
                {"role": "system", "content": _system_prompt(travel_type)},
                {
                    "role": "user",
                    "content": _build_user_message(travel_type, places),
                },
            ],
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            response_format={"type": "json_object"},
        )

        content = response.choices[0].message.content or ""
        parsed = json.loads(content)

        results: dict[str, str] = {}
        for item in parsed.get("recommendations", []):
            pid = str(item.get("place_id", ""))
            reason = item.get("reason", "")
            if pid and reason:
                results[pid] = reason

        return results

    except Exception:
        logger.warning("Groq LLM call failed, falling back to heuristic ranking", exc_info=True)
        return {}
