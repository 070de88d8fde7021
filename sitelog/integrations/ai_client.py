"""Generative-AI client for report analysis and the project assistant.

Talks to any OpenAI-compatible ``chat/completions`` endpoint. A key starting
with ``mock_`` switches to canned answers built from the data, for
development and tests. Every public method returns text and never raises:
on failure the caller gets a fixed apology string.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from sitelog.config import settings
from sitelog.core.reports.schemas import ReportDocument
from sitelog.integrations.base import BaseIntegration

ANALYSIS_FALLBACK = "Unable to generate analysis at this time."
ANALYSIS_EMPTY = "No analysis generated."
TRENDS_NO_DATA = "Not enough data for trend analysis."
TRENDS_FALLBACK = "Error analyzing trends."
TRENDS_EMPTY = "No trends identified."
CHAT_FALLBACK = "Sorry, I encountered an error connecting to the AI service."
CHAT_EMPTY = "I couldn't generate a response."

# Keys dropped from report context sent to the model
_INTERNAL_KEYS = {"id", "user_id", "created_at", "updated_at"}


def _is_mock() -> bool:
    return settings.AI_API_KEY.startswith("mock_")


def strip_internal_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: strip_internal_keys(v) for k, v in value.items() if k not in _INTERNAL_KEYS}
    if isinstance(value, list):
        return [strip_internal_keys(v) for v in value]
    return value


def report_context(reports: list[ReportDocument]) -> str:
    return json.dumps([strip_internal_keys(r.model_dump(mode="json")) for r in reports])


class AIClient(BaseIntegration):
    """AI client that calls an OpenAI-compatible API, with mock fallback."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        super().__init__("ai")
        self._base_url = settings.AI_BASE_URL.rstrip("/")
        self._model = settings.AI_MODEL
        self._chat_model = settings.AI_CHAT_MODEL
        self._transport = transport

    async def health_check(self) -> bool:
        if _is_mock():
            self.logger.info("AI client health check: OK (mock)")
            return True
        try:
            async with httpx.AsyncClient(timeout=10, transport=self._transport) as client:
                resp = await client.get(
                    f"{self._base_url}/models",
                    headers={"Authorization": f"Bearer {settings.AI_API_KEY}"},
                )
                return resp.status_code == 200
        except httpx.HTTPError as e:
            self.logger.error("AI health check failed: %s", e)
            return False

    async def _complete(
        self, messages: list[dict[str, str]], model: str | None = None, temperature: float = 0.4
    ) -> str:
        """Return the first choice's text; a reply of the wrong shape raises ValueError."""
        async with httpx.AsyncClient(
            timeout=settings.AI_TIMEOUT_SECONDS, transport=self._transport
        ) as client:
            resp = await client.post(
                f"{self._base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {settings.AI_API_KEY}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": model or self._model,
                    "messages": messages,
                    "temperature": temperature,
                },
            )
            resp.raise_for_status()
            data = resp.json()

        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise ValueError("AI reply has no choices")
        message = choices[0].get("message")
        if not isinstance(message, dict):
            raise ValueError("AI reply choice has no message")
        content = message.get("content")
        if content is None:
            return ""
        if not isinstance(content, str):
            raise ValueError(f"AI reply content is {type(content).__name__}, not text")
        return content.strip()

    # ------------------------------------------------------------------
    # Single report
    # ------------------------------------------------------------------

    async def analyze_report(self, report: ReportDocument) -> str:
        self.logger.info("Analyzing report %s (%d activities)", report.date, len(report.activities))

        if _is_mock():
            crew = sum(len(a.manpower) for a in report.activities)
            open_risks = [
                r for a in report.activities for r in a.risks
                if r.status.value == "Open" or r.impact.value == "High"
            ]
            return (
                f"Executive summary for {report.date.isoformat()}: "
                f"{len(report.activities)} activities logged with {crew} manpower entries. "
                f"{len(open_risks)} open or high-impact risks need attention. "
                "Keep toolbox talks daily and confirm PPE checks before shift start."
            )

        prompt = (
            "You are a senior construction project manager. Analyze the following daily site "
            "report and provide a brief, professional executive summary (max 200 words).\n"
            "Focus on:\n"
            "1. Total manpower deployment and key activities implied by resources.\n"
            "2. Critical risks that are Open or High impact.\n"
            "3. A brief safety recommendation based on the entries.\n\n"
            f"Date: {report.date.isoformat()}\n"
            f"Activities: {json.dumps(strip_internal_keys(report.model_dump(mode='json')['activities']))}"
        )
        try:
            result = await self._complete([{"role": "user", "content": prompt}])
        except (httpx.HTTPError, ValueError) as e:
            self.logger.warning("Report analysis failed: %s", e)
            return ANALYSIS_FALLBACK
        return result or ANALYSIS_EMPTY

    # ------------------------------------------------------------------
    # Risk trends
    # ------------------------------------------------------------------

    async def identify_risk_trends(self, reports: list[ReportDocument]) -> str:
        if not reports:
            return TRENDS_NO_DATA

        recent = sorted(reports, key=lambda r: r.date)[-settings.TREND_CONTEXT_REPORTS:]
        self.logger.info("Analyzing risk trends over %d reports", len(recent))
        timeline = [
            {
                "date": r.date.isoformat(),
                "risks": [
                    strip_internal_keys(risk.model_dump(mode="json"))
                    for a in r.activities for risk in a.risks
                ],
            }
            for r in recent
        ]

        if _is_mock():
            total = sum(len(t["risks"]) for t in timeline)
            return (
                f"Reviewed {len(timeline)} reports with {total} logged risks. "
                "No escalating pattern detected in the mock analysis."
            )

        prompt = (
            "Analyze these daily construction reports for risk trends.\n"
            "Identify recurring issues or escalating risks across the provided timeline.\n\n"
            f"Reports: {json.dumps(timeline)}"
        )
        try:
            result = await self._complete([{"role": "user", "content": prompt}], model=self._chat_model)
        except (httpx.HTTPError, ValueError) as e:
            self.logger.warning("Risk trend analysis failed: %s", e)
            return TRENDS_FALLBACK
        return result or TRENDS_EMPTY

    # ------------------------------------------------------------------
    # Assistant chat
    # ------------------------------------------------------------------

    async def chat_with_project_data(
        self,
        message: str,
        reports: list[ReportDocument],
        history: list[dict[str, str]],
    ) -> str:
        recent = sorted(reports, key=lambda r: r.date, reverse=True)[: settings.CHAT_CONTEXT_REPORTS]
        self.logger.info("Assistant chat with %d reports of context", len(recent))

        if _is_mock():
            return (
                f"I have {len(recent)} recent reports on file. "
                f"You asked: {message.strip()[:200]}"
            )

        system = (
            'You are "SiteLog Assistant", an AI expert for a construction site daily-reporting app.\n'
            f"You have access to the last {settings.CHAT_CONTEXT_REPORTS} daily site reports "
            "provided below and can answer questions about manpower, materials, equipment, risks "
            "and progress. Keep answers concise, professional and data-driven. If asked about "
            "data not in the context, explain that you only have access to recent reports.\n\n"
            f"Context (Recent Project Data):\n{report_context(recent)}"
        )
        messages = [{"role": "system", "content": system}]
        for turn in history:
            role = "user" if turn.get("role") == "user" else "assistant"
            messages.append({"role": role, "content": turn.get("text", "")})
        messages.append({"role": "user", "content": message})

        try:
            result = await self._complete(messages, model=self._chat_model, temperature=0.3)
        except (httpx.HTTPError, ValueError) as e:
            self.logger.warning("Assistant chat failed: %s", e)
            return CHAT_FALLBACK
        return result or CHAT_EMPTY
