"""Unit tests for ActionItemExtractor.

The LLM service's structured() call is mocked to return ActionItemList
instances (what instructor would hand back) or to raise.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.meetflow.meetings.errors import (
    ExtractionFailed,
    MalformedExtraction,
    ProviderNotConfigured,
    RateLimited,
)
from src.meetflow.meetings.minutes.extractor import ActionItemExtractor
from src.meetflow.meetings.schemas import (
    NOT_SPECIFIED,
    ActionItemList,
    ExtractedActionItem,
    SourceKind,
)
from src.meetflow.tasks.schemas import TaskPriority

TRANSCRIPT = "Alice will send the report by Friday. Bob to review the budget."


def _make_llm(result=None, side_effect=None) -> MagicMock:
    llm = MagicMock()
    llm.structured = AsyncMock(return_value=result, side_effect=side_effect)
    return llm


def _alice_and_bob() -> ActionItemList:
    return ActionItemList(
        action_items=[
            ExtractedActionItem(
                task="Send the report",
                assignee="Alice",
                deadline="Friday",
                priority="high",
                category="Documentation",
            ),
            ExtractedActionItem(
                task="Review the budget",
                assignee="Bob",
                deadline=NOT_SPECIFIED,
            ),
        ]
    )


# ── Extraction ───────────────────────────────────────────────────────────────


async def test_extracts_items_in_order():
    extractor = ActionItemExtractor(llm_service=_make_llm(_alice_and_bob()))

    items = await extractor.extract(TRANSCRIPT)

    assert len(items) == 2
    first, second = items
    assert "send the report" in first.description.lower()
    assert first.assignee == "Alice"
    assert "Friday" in first.deadline
    assert first.priority == TaskPriority.HIGH
    assert "review the budget" in second.description.lower()
    assert second.assignee == "Bob"


async def test_sentinel_deadline_becomes_none():
    extractor = ActionItemExtractor(llm_service=_make_llm(_alice_and_bob()))

    items = await extractor.extract(TRANSCRIPT)

    assert items[1].deadline is None
    assert all(i.assignee != NOT_SPECIFIED for i in items)


async def test_every_item_satisfies_invariants():
    extractor = ActionItemExtractor(llm_service=_make_llm(_alice_and_bob()))

    items = await extractor.extract(TRANSCRIPT)

    for item in items:
        assert item.description.strip()
        assert item.priority is None or item.priority in set(TaskPriority)


async def test_no_action_items_returns_empty_list():
    extractor = ActionItemExtractor(llm_service=_make_llm(ActionItemList(action_items=[])))

    items = await extractor.extract("Just a social chat, nothing to do.")

    assert items == []


async def test_structured_call_uses_schema_and_extraction_parameters():
    llm = _make_llm(ActionItemList())
    await ActionItemExtractor(llm_service=llm).extract("minutes text", SourceKind.MINUTES)

    kwargs = llm.structured.call_args.kwargs
    assert kwargs["response_model"] is ActionItemList
    assert kwargs["temperature"] == 0.2
    assert kwargs["max_tokens"] == 1500
    prompt = kwargs["messages"][1]["content"]
    assert "minutes text" in prompt
    assert f"'{NOT_SPECIFIED}'" in prompt


async def test_source_kind_accepts_plain_string():
    llm = _make_llm(ActionItemList())
    await ActionItemExtractor(llm_service=llm).extract("text", "minutes")

    prompt = llm.structured.call_args.kwargs["messages"][1]["content"]
    assert "Meeting Content:" in prompt


# ── Failures ─────────────────────────────────────────────────────────────────


async def test_malformed_output_fails_whole_call():
    extractor = ActionItemExtractor(
        llm_service=_make_llm(side_effect=MalformedExtraction("bad json"))
    )

    with pytest.raises(MalformedExtraction):
        await extractor.extract(TRANSCRIPT)


async def test_wrong_result_type_is_malformed():
    extractor = ActionItemExtractor(llm_service=_make_llm({"action_items": []}))

    with pytest.raises(MalformedExtraction):
        await extractor.extract(TRANSCRIPT)


async def test_blank_task_fails_whole_batch():
    batch = ActionItemList(
        action_items=[
            ExtractedActionItem(task="Send the report", assignee="Alice", deadline="Friday"),
            ExtractedActionItem(task="   ", assignee="Bob", deadline=NOT_SPECIFIED),
        ]
    )
    extractor = ActionItemExtractor(llm_service=_make_llm(batch))

    with pytest.raises(MalformedExtraction):
        await extractor.extract(TRANSCRIPT)


@pytest.mark.parametrize("exc", [RateLimited("429"), ProviderNotConfigured("no keys")])
async def test_provider_failures_propagate(exc):
    extractor = ActionItemExtractor(llm_service=_make_llm(side_effect=exc))

    with pytest.raises(type(exc)):
        await extractor.extract(TRANSCRIPT)


async def test_unexpected_errors_become_extraction_failed():
    extractor = ActionItemExtractor(llm_service=_make_llm(side_effect=TypeError("nope")))

    with pytest.raises(ExtractionFailed):
        await extractor.extract(TRANSCRIPT)
