"""
insights.py — optional strategic commentary from a hosted text-generation model

Only aggregate figures leave the process: the four headline stats, the top
divisions by record count and the MATATAG category totals. No row-level data
is sent.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Sequence

import anthropic

from ta_monitor.config import Settings, load_settings
from ta_monitor.models import FTADStats, TARecord
from ta_monitor.stats import category_totals, compute_stats, top_divisions

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = (
    "You are a Senior Education and Technical Assistance Consultant. You provide strategic advice "
    "to the Field Technical Assistance Division (FTAD) on how to improve support to field offices "
    "based on their current performance metrics."
)
TEMPERATURE = 0.7

ERROR_MESSAGE = "Error generating TA strategic insights. Please check connectivity or API key configurations."
EMPTY_RESPONSE_MESSAGE = "No insights generated."
MISSING_KEY_MESSAGE = "ANTHROPIC_API_KEY is not set; strategic insights are unavailable."
NO_RECORDS_MESSAGE = "Load monitoring records before requesting insights."


def build_prompt(
    stats: FTADStats,
    divisions: Sequence[dict[str, Any]],
    categories: Sequence[dict[str, Any]],
) -> str:
    return "\n".join(
        [
            "Analyze this Field Technical Assistance Division (FTAD) data.",
            "Focus on operational efficiency, support coverage, and field office compliance.",
            "",
            "Current Stats:",
            f"- Total TA Interventions: {stats.total_interventions}",
            f"- Resolution Rate: {stats.resolution_rate:.1f}%",
            f"- Support Objectives: {stats.total_objectives}",
            f"- Institutional Reach: {stats.unique_entities}",
            "",
            "Division Engagement:",
            json.dumps(list(divisions), ensure_ascii=False),
            "",
            "Thematic Focus Areas:",
            json.dumps(list(categories), ensure_ascii=False),
            "",
            "Provide 3-4 professional strategic insights. Avoid financial terminology. "
            "Focus on 'Support Quality', 'Responsiveness', and 'Gap Analysis'.",
        ]
    )


def split_insight_lines(text: str) -> list[str]:
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


def _response_text(response: Any) -> str:
    parts = [block.text for block in getattr(response, "content", []) or [] if getattr(block, "type", "") == "text"]
    return "\n".join(parts)


def generate_insights(
    records: Sequence[TARecord],
    settings: Settings | None = None,
    client: Any = None,
) -> list[str]:
    """Return display lines; every failure comes back as a single fixed message line."""
    if not records:
        return [NO_RECORDS_MESSAGE]
    settings = settings or load_settings()
    if client is None:
        if not settings.api_key:
            return [MISSING_KEY_MESSAGE]
        client = anthropic.Anthropic(api_key=settings.api_key, timeout=settings.timeout)

    prompt = build_prompt(compute_stats(records), top_divisions(records), category_totals(records))
    try:
        response = client.messages.create(
            model=settings.model,
            max_tokens=settings.max_tokens,
            temperature=TEMPERATURE,
            system=SYSTEM_INSTRUCTION,
            messages=[{"role": "user", "content": prompt}],
        )
    except Exception as exc:
        logger.warning("Insight generation failed: %s", exc)
        return [ERROR_MESSAGE]

    lines = split_insight_lines(_response_text(response))
    return lines or [EMPTY_RESPONSE_MESSAGE]
