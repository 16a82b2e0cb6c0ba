"""SummarySynthesizer -- stakeholder-facing digest of a meeting.

Turns the minutes and the extracted action items into a short,
email-ready summary (overview, decisions, priority action items, next
steps). Length is a prompt target only (~300 words).
"""

from __future__ import annotations

import structlog

from src.meetflow.meetings.errors import PROPAGATED_PROVIDER_ERRORS, SynthesisFailed
from src.meetflow.meetings.schemas import NOT_SPECIFIED, ActionItem
from src.meetflow.services.llm import LLMService

logger = structlog.get_logger(__name__)

SUMMARY_TEMPERATURE = 0.3
SUMMARY_MAX_TOKENS = 800
SUMMARY_TARGET_WORDS = 300

NO_ACTION_ITEMS = "No specific action items identified."

SYSTEM_PROMPT = (
    "You are a professional communicator who creates clear, concise email "
    "summaries of meetings for busy executives and stakeholders."
)


def format_action_items(action_items: list[ActionItem]) -> str:
    """Render action items as prompt bullets, or the explicit none clause."""
    if not action_items:
        return NO_ACTION_ITEMS
    lines = []
    for item in action_items:
        priority = item.priority.value if item.priority else NOT_SPECIFIED
        lines.append(
            f"- {item.description} "
            f"(Assignee: {item.assignee or NOT_SPECIFIED}, "
            f"Deadline: {item.deadline or NOT_SPECIFIED}, "
            f"Priority: {priority})"
        )
    return "\n".join(lines)


class SummarySynthesizer:
    """Generates the executive digest.

    Args:
        llm_service: LLMService used for the completion call.
    """

    def __init__(self, llm_service: LLMService) -> None:
        self._llm_service = llm_service

    async def summarize(self, minutes_text: str, action_items: list[ActionItem]) -> str:
        """Summarize minutes plus action items for stakeholders.

        Raises:
            RateLimited: Provider rate limit (propagated).
            AuthFailure, ProviderNotConfigured: Configuration problems.
            SynthesisFailed: Any other failure, including empty output.
        """
        prompt = (
            "Create a concise, email-ready summary from the following "
            "Minutes of Meeting.\n\n"
            f"Minutes of Meeting:\n{minutes_text}\n\n"
            f"Action Items:\n{format_action_items(action_items)}\n\n"
            "Please create a professional email summary that includes:\n"
            "1. Brief meeting overview (2-3 sentences)\n"
            "2. Key decisions/outcomes\n"
            "3. Priority action items\n"
            "4. Next steps\n\n"
            f"Keep it concise (under {SUMMARY_TARGET_WORDS} words) and suitable "
            "for sending to stakeholders who may not have attended the meeting. "
            "If there are no action items, say so explicitly. "
            "Use a professional but friendly tone."
        )

        try:
            response = await self._llm_service.completion(
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=SUMMARY_MAX_TOKENS,
                temperature=SUMMARY_TEMPERATURE,
                metadata={"stage": "summary"},
            )
        except PROPAGATED_PROVIDER_ERRORS:
            raise
        except Exception as exc:
            logger.error("summary.generation_failed", error_type=type(exc).__name__)
            raise SynthesisFailed("Failed to generate email summary") from exc

        summary = (response.get("content") or "").strip()
        if not summary:
            raise SynthesisFailed("Summary generation returned empty output")

        # The digest must never silently drop the action-item section
        if not action_items and NO_ACTION_ITEMS.lower() not in summary.lower():
            summary = f"{summary}\n\nAction Items: {NO_ACTION_ITEMS}"

        logger.info(
            "summary.generated",
            words=len(summary.split()),
            action_items=len(action_items),
        )
        return summary
