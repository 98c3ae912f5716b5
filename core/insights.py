"""Narrative analysis of the current records.

The text generator is injected as a plain ``prompt -> text`` callable so the
dashboard core never depends on a concrete LLM service. ``OpenAIAnalyzer`` is
the default capability used by the API and the Streamlit UI.
"""

from __future__ import annotations

import json
import logging
from typing import Callable, Optional, Sequence

from openai import OpenAI

from core.config import get_settings
from core.models import ActivityRecord


logger = logging.getLogger(__name__)

Analyzer = Callable[[str], str]

FALLBACK_ANALYSIS_MESSAGE = (
    "Unable to generate AI insights at this time. Please check your API key configuration."
)


def build_analysis_prompt(records: Sequence[ActivityRecord], domain_filter: Optional[str]) -> str:
    summary = [
        {
            "domain": r.domain_name,
            "activity": r.activity_name,
            "status": r.status.value,
            "budget": r.allocation_budget,
            "spent": r.expenditure,
            "balance": r.balance,
        }
        for r in records
    ]
    context = f"Focusing on the '{domain_filter}' domain." if domain_filter else "Analyzing all domains."
    return (
        "You are a senior project manager and budget analyst.\n"
        f"{context}\n"
        "Analyze the following project activity and budget data:\n"
        f"{json.dumps(summary)}\n\n"
        "Please provide a concise executive summary formatted in Markdown including:\n"
        "1. **Overall Health**: 1-2 sentences on general status.\n"
        "2. **Budget Risks**: Specifically name activities over budget.\n"
        "3. **Status Blockers**: Note if certain domains are lagging.\n"
        "4. **Strategic Recommendations**: 2 actionable steps for the team.\n"
    )


class OpenAIAnalyzer:
    """Chat-completion backed analyzer."""

    def __init__(self, model: Optional[str] = None, api_key: Optional[str] = None, max_tokens: int = 1024) -> None:
        settings = get_settings()
        self._client = OpenAI(api_key=api_key or settings.openai_api_key)
        self._model = model or settings.openai_model
        self._max_tokens = max_tokens

    def __call__(self, prompt: str) -> str:
        response = self._client.chat.completions.create(
            model=self._model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0.3,
            max_tokens=self._max_tokens,
        )
        return response.choices[0].message.content or ""


def analyze_dashboard_data(
    records: Sequence[ActivityRecord],
    domain_filter: Optional[str] = None,
    analyzer: Optional[Analyzer] = None,
) -> str:
    """Return the generated summary, or the fixed fallback message on any failure."""
    try:
        generate = analyzer or OpenAIAnalyzer()
        text = generate(build_analysis_prompt(records, domain_filter))
    except Exception:
        logger.exception("Error generating insights")
        return FALLBACK_ANALYSIS_MESSAGE
    if not text or not text.strip():
        return FALLBACK_ANALYSIS_MESSAGE
    return text
