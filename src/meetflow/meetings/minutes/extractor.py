"""ActionItemExtractor -- structured action items from meeting text.

Uses LLMService.structured (instructor over the LiteLLM router) with
ActionItemList as the response model. The contract is all-or-nothing: a
response that does not validate fails the whole call with
MalformedExtraction; there is no per-item salvage. An empty list is a
valid answer.

The provider schema carries the "Not specified" sentinel for absent
assignees and deadlines; items are converted to ActionItem here, which
turns the sentinel into None before anything downstream sees it.
"""

from __future__ import annotations

import structlog
from pydantic import ValidationError

from src.meetflow.meetings.errors import (
    PROPAGATED_PROVIDER_ERRORS,
    ExtractionFailed,
    MalformedExtraction,
)
from src.meetflow.meetings.schemas import (
    NOT_SPECIFIED,
    ActionItem,
    ActionItemList,
    SourceKind,
)
from src.meetflow.services.llm import LLMService

logger = structlog.get_logger(__name__)

EXTRACTION_TEMPERATURE = 0.2
EXTRACTION_MAX_TOKENS = 1500

SYSTEM_PROMPT = (
    "You are an expert at identifying and extracting action items from "
    "meeting content. Return only data matching the requested schema."
)


def _build_user_prompt(source_text: str, source_kind: SourceKind) -> str:
    heading = (
        "Meeting Transcript:"
        if source_kind is SourceKind.TRANSCRIPT
        else "Meeting Content:"
    )
    return (
        f"Analyze the following {source_kind.value} and extract all action "
        "items, tasks, and follow-ups mentioned.\n\n"
        f"{heading}\n{source_text}\n\n"
        "For each action item give:\n"
        "- task: description of the task\n"
        f"- assignee: person responsible if mentioned, otherwise '{NOT_SPECIFIED}'\n"
        f"- deadline: deadline if mentioned, otherwise '{NOT_SPECIFIED}'\n"
        "- priority: low, medium, high or urgent, based on context\n"
        "- category: e.g. Development, Research, Meeting, Documentation\n\n"
        "Focus on:\n"
        "- Clear, actionable tasks\n"
        "- Specific deliverables\n"
        "- Follow-up meetings\n"
        "- Research or investigation tasks\n"
        "- Decisions that require implementation\n\n"
        "If there are no action items, return an empty list."
    )


class ActionItemExtractor:
    """Extracts candidate tasks from a transcript or minutes.

    Args:
        llm_service: LLMService used for the structured call.
    """

    def __init__(self, llm_service: LLMService) -> None:
        self._llm_service = llm_service

    async def extract(
        self,
        source_text: str,
        source_kind: SourceKind = SourceKind.TRANSCRIPT,
    ) -> list[ActionItem]:
        """Extract action items.

        Args:
            source_text: Transcript or minutes text.
            source_kind: Which of the two the text is.

        Returns:
            Action items in the order the model listed them; possibly empty.

        Raises:
            MalformedExtraction: Model output did not match the schema.
            RateLimited, AuthFailure, ProviderNotConfigured: Provider failures.
            ExtractionFailed: Any other failure.
        """
        source_kind = SourceKind(source_kind)
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": _build_user_prompt(source_text, source_kind)},
        ]

        try:
            extracted = await self._llm_service.structured(
                messages=messages,
                response_model=ActionItemList,
                max_tokens=EXTRACTION_MAX_TOKENS,
                temperature=EXTRACTION_TEMPERATURE,
            )
        except (MalformedExtraction, *PROPAGATED_PROVIDER_ERRORS):
            raise
        except Exception as exc:
            logger.error("action_items.extraction_failed", error_type=type(exc).__name__)
            raise ExtractionFailed("Failed to extract action items") from exc

        if not isinstance(extracted, ActionItemList):
            raise MalformedExtraction(
                f"Expected ActionItemList, got {type(extracted).__name__}"
            )

        try:
            items = [item.to_action_item() for item in extracted.action_items]
        except ValidationError as exc:
            raise MalformedExtraction("Extracted action item failed validation") from exc

        logger.info(
            "action_items.extracted",
            source_kind=source_kind.value,
            count=len(items),
        )
        return items
