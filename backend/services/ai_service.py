"""
ai_service.py — AI coach
Builds coaching and chart-insight prompts from the user's data and sends them
to Gemini with key rotation and response caching. Never raises: failures are
logged and turned into a friendly message.
"""

import json
import logging
from datetime import timedelta

from sqlalchemy.orm import Session

from config import AI_CACHE_TTL, GEMINI_MODEL
from providers.gemini_provider import GeminiProvider
from services.analytics_service import AnalyticsService, format_minutes
from services.cache_service import ResponseCache
from services.commitment_service import CommitmentService
from services.key_manager import KeyManager
from services.lifecycle import STATUS_ACTIVE, STATUS_DUE, local_today
from services.project_service import ProjectService
from services.target_service import TargetService

logger = logging.getLogger(__name__)

DISABLED_MESSAGE = "AI feature is disabled. Please set GEMINI_API_KEYS to enable the coach."
EMPTY_MESSAGE = "The AI returned an empty response. You might want to rephrase your request."
APOLOGY_MESSAGE = "Sorry, the AI coach is unavailable right now. Please try again in a little while."

COACH_INSTRUCTION = (
    "You are FocusFlow's productivity coach. Be encouraging, specific and brief. "
    "Refer to the user's actual numbers, point out one strength and one thing to improve, "
    "and finish with a concrete suggestion for the coming week. Use Markdown."
)
INSIGHT_INSTRUCTION = (
    "You are a data analyst for a focus-timer app. Explain the chart data in plain language, "
    "highlight notable patterns and give one actionable tip. Use Markdown and keep it short."
)


def build_coaching_prompt(summary: dict, categories: list[dict], projects, targets, commitments) -> str:
    lines = [
        f"Week {summary['start_date']} to {summary['end_date']}:",
        f"- Total focus time: {summary['total_focus_time']}",
        f"- Tasks completed: {summary['completed_tasks']} of {summary['total_tasks']} "
        f"({summary['task_completion_rate']}%)",
    ]
    best = summary.get("most_productive_day")
    if best:
        lines.append(f"- Most productive day: {best['weekday']} ({format_minutes(best['minutes'])})")
    if summary["completed_projects"]:
        lines.append(f"- Projects completed: {', '.join(summary['completed_projects'])}")
    if summary["incomplete_tasks"]:
        lines.append(f"- Unfinished tasks: {', '.join(summary['incomplete_tasks'][:10])}")

    if categories:
        lines.append("\nFocus by category:")
        lines.extend(f"- {c['tag']}: {format_minutes(c['minutes'])}" for c in categories)

    if projects:
        lines.append("\nOpen projects:")
        for p in projects:
            goal = ""
            if p.completion_criteria_value:
                goal = f" ({p.progress_value or 0:g}/{p.completion_criteria_value} {p.completion_criteria_type})"
            deadline = f", deadline {p.deadline}" if p.deadline else ""
            lines.append(f"- {p.name} [{p.status}]{goal}{deadline}")

    if targets:
        lines.append("\nTargets:")
        for t in targets:
            progress = ""
            if t.target_minutes:
                progress = f" ({format_minutes(t.progress_minutes or 0)} of {format_minutes(t.target_minutes)})"
            lines.append(f"- {t.text} [{t.status}], deadline {t.deadline}{progress}")

    if commitments:
        lines.append("\nActive commitments:")
        lines.extend(f"- {c.text}" + (f" (due {c.due_date})" if c.due_date else "") for c in commitments)

    lines.append("\nWrite my weekly coaching summary.")
    return "\n".join(lines)


def build_insight_prompt(chart_title: str, chart_data, question: str | None = None) -> str:
    data = json.dumps(chart_data, default=str, indent=2)
    prompt = f"Chart: {chart_title}\nData:\n{data}\n"
    if question:
        prompt += f"\nQuestion: {question}\n"
    return prompt + "\nWhat does this tell me about my focus habits?"


class AIService:
    """Gemini text generation with key rotation and caching."""

    def __init__(self, key_manager: KeyManager | None = None, provider_factory=GeminiProvider,
                 cache: ResponseCache | None = None, model: str = GEMINI_MODEL):
        self.key_manager = key_manager or KeyManager()
        self.provider_factory = provider_factory
        self.cache = cache or ResponseCache()
        self.model = model

    async def generate(self, prompt: str, system_instruction: str | None = None, cache_ttl: int = AI_CACHE_TTL) -> str:
        """String in, string out. Tries each available key once."""
        if not len(self.key_manager):
            logger.warning("Gemini API key is not configured; AI features are disabled")
            return DISABLED_MESSAGE

        cached = self.cache.get(system_instruction or "", prompt, self.model)
        if cached is not None:
            return cached

        for _ in range(len(self.key_manager)):
            api_key = self.key_manager.get_next_key()
            if api_key is None:
                break

            result = await self.provider_factory(api_key=api_key).generate(prompt, system_instruction, self.model)
            if result.get("status") == "success":
                text = (result.get("text") or "").strip()
                if not text:
                    logger.warning("Received an empty text response from Gemini")
                    return EMPTY_MESSAGE
                self.cache.set(system_instruction or "", prompt, self.model, text, cache_ttl)
                return text

            if result.get("exhausted"):
                self.key_manager.mark_exhausted(api_key)
            logger.warning(f"Gemini call failed: {result.get('error')}")

        return APOLOGY_MESSAGE

    async def coaching_summary(self, db: Session, user_id: str, now) -> str:
        week_start = local_today(now) - timedelta(days=6)
        summary = AnalyticsService.weekly_summary(db, user_id, now)
        categories = AnalyticsService.category_breakdown(db, user_id, now, week_start, local_today(now))
        projects = [p for p in ProjectService.get_all(db, user_id, now) if p.status in (STATUS_ACTIVE, STATUS_DUE)]
        targets = [t for t in TargetService.get_all(db, user_id, now) if t.status in (STATUS_ACTIVE, STATUS_DUE)]
        commitments = CommitmentService.get_all(db, user_id, status=STATUS_ACTIVE)

        prompt = build_coaching_prompt(summary, categories, projects, targets, commitments)
        return await self.generate(prompt, COACH_INSTRUCTION)

    async def insight(self, chart_title: str, chart_data, question: str | None = None) -> str:
        return await self.generate(build_insight_prompt(chart_title, chart_data, question), INSIGHT_INSTRUCTION)


ai_service = AIService()


def get_ai_service() -> AIService:
    """FastAPI dependency for the shared AIService."""
    return ai_service
