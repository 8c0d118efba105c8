"""
Report summarization over an OpenAI-compatible chat completions API.

Read-only consumer of report data: builds a context from stores, reports and
aggregate counts, asks the model, and returns free text. A slow, failing or
empty-handed model never touches report state.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from storereports.core.config import Settings, settings as default_settings
from storereports.core.errors import SummaryUnavailable

logger = logging.getLogger(__name__)

FALLBACK_TEXT = "No summary could be generated from the available reports."

SYSTEM_PROMPTS = {
    "summary": (
        "You are a retail analyst assistant that extracts insights from store reports. "
        "Identify key trends across stores, notable patterns in sales, customers or inventory, "
        "and issues that need attention. Cite store names and dates for every insight. "
        "Be concise and professional."
    ),
    "chat": (
        "You are a retail analyst assistant answering questions about store reports. "
        "Only use the report data provided, cite stores and dates, and say so when the data "
        "is not enough to answer. Keep answers concise and professional."
    ),
}


def _answer_entry(answer) -> Dict[str, Any]:
    question = getattr(answer, "question", None)
    value = answer.value
    if value is None:
        value = "No answer provided"
    elif isinstance(value, (dict, list)):
        value = json.dumps(value)
    return {
        "question": question.text if question is not None else "Unknown question",
        "question_type": question.type.value if question is not None else "text",
        "answer": value,
    }


def build_context(stores: Sequence[Any], reports: Sequence[Any]) -> Dict[str, Any]:
    store_data = [
        {"id": str(s.id), "name": s.name, "location": s.location, "manager": s.manager}
        for s in stores
    ]
    report_data = []
    for r in reports:
        answers = [_answer_entry(a) for a in (r.answers or [])]
        report_data.append(
            {
                "id": str(r.id),
                "store_id": str(r.store_id),
                "store_name": r.store.name if r.store else "Unknown store",
                "template_name": r.template.title if r.template else "Unknown template",
                "submitted_at": r.submitted_at.isoformat() if r.submitted_at else None,
                "completed": r.completed,
                "answers": answers,
            }
        )

    analytics = {
        "total_reports": len(reports),
        "completed_reports": sum(1 for r in reports if r.completed),
        "stores_with_reports": len({str(r.store_id) for r in reports}),
        "reports_by_store": {
            s.name: sum(1 for r in reports if r.store_id == s.id) for s in stores
        },
        "reports_with_answers": sum(1 for r in reports if r.answers),
        "total_answers": sum(len(r.answers or []) for r in reports),
    }
    return {"stores": store_data, "reports": report_data, "analytics": analytics}


class SummaryClient:
    """Thin client for /chat/completions."""

    def __init__(self, config: Optional[Settings] = None, transport: Optional[httpx.BaseTransport] = None) -> None:
        self.config = config or default_settings
        self.transport = transport  # tests inject httpx.MockTransport

    def _build_messages(self, context: Dict[str, Any], messages: List[Dict[str, str]], mode: str) -> list:
        context_text = (
            "STORE INFORMATION:\n" + json.dumps(context["stores"], default=str)
            + "\n\nREPORT INFORMATION:\n" + json.dumps(context["reports"], default=str)
            + "\n\nREPORT ANALYTICS:\n" + json.dumps(context["analytics"], default=str)
        )
        return [
            {"role": "system", "content": SYSTEM_PROMPTS[mode]},
            {"role": "system", "content": context_text},
            *messages,
        ]

    def generate(self, context: Dict[str, Any], messages: List[Dict[str, str]], mode: str = "summary") -> Dict[str, str]:
        if mode not in SYSTEM_PROMPTS:
            raise ValueError(f"unknown summary mode '{mode}'")
        if not messages:
            messages = [{"role": "user", "content": "Summarize the latest store reports."}]

        try:
            with httpx.Client(timeout=self.config.llm_timeout, transport=self.transport) as client:
                response = client.post(
                    self.config.llm_base_url.rstrip("/") + "/chat/completions",
                    headers={
                        "Authorization": f"Bearer {self.config.llm_api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "model": self.config.llm_model,
                        "messages": self._build_messages(context, messages, mode),
                        "temperature": self.config.llm_temperature,
                        "max_tokens": self.config.llm_max_tokens,
                    },
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            logger.warning("summary request timed out: %s", e)
            raise SummaryUnavailable("The summary service timed out. Please try again.") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("summary request failed: %s", e)
            raise SummaryUnavailable("The summary service is unavailable.") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not isinstance(content, str) or not content.strip():
            logger.info("summary service returned no usable text; using fallback")
            content = FALLBACK_TEXT
        return {"role": "assistant", "content": content.strip()}
