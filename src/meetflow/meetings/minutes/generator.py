"""MinutesSynthesizer -- Minutes of Meeting (MOM) from a transcript.

Produces a markdown document with a fixed seven-section shape:

1. Meeting Overview
2. Attendees
3. Key Discussion Points
4. Decisions Made
5. Action Items (prose; the structured list comes from the extractor)
6. Next Steps
7. Next Meeting

The model is asked for exactly these headings, and the response is then
re-assembled in canonical order so every returned document carries all
seven sections regardless of how the model formatted it. Sections the
model left out are rendered as "Not specified".

Exports:
    MinutesSynthesizer: Minutes generation service.
    MINUTES_SECTIONS: Section headings, in document order.
    normalize_minutes: Re-assemble model output into the seven sections.
"""

from __future__ import annotations

import re

import structlog

from src.meetflow.meetings.errors import PROPAGATED_PROVIDER_ERRORS, SynthesisFailed
from src.meetflow.meetings.schemas import NOT_SPECIFIED
from src.meetflow.services.llm import LLMService

logger = structlog.get_logger(__name__)


# ── Constants ────────────────────────────────────────────────────────────────

MINUTES_SECTIONS: tuple[str, ...] = (
    "Meeting Overview",
    "Attendees",
    "Key Discussion Points",
    "Decisions Made",
    "Action Items",
    "Next Steps",
    "Next Meeting",
)

MINUTES_TEMPERATURE = 0.3
MINUTES_MAX_TOKENS = 2000

# A heading line: optional markdown hashes, bold markers and numbering,
# then exactly one section label, optionally followed by a parenthetical
# and a colon. Nothing else may share the line.
_HEADING_RE = re.compile(
    r"^[ \t]*(?:#{1,6}[ \t]*)?(?:\*\*)?[ \t]*(?:\d+[.)][ \t]*)?(?:\*\*)?[ \t]*"
    r"(?P<label>" + "|".join(re.escape(s) for s in MINUTES_SECTIONS) + r")"
    r"(?:[ \t]*\([^)\n]*\))?[ \t]*:?[ \t]*(?:\*\*)?[ \t]*:?[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)


# ── System Prompt ────────────────────────────────────────────────────────────

SYSTEM_PROMPT = (
    "You are a professional meeting secretary who creates detailed and "
    "well-structured Minutes of Meeting. Focus on clarity, accuracy, and "
    "actionable items."
)


def _build_user_prompt(
    transcript_text: str, meeting_title: str, participant_names: list[str]
) -> str:
    participants = ", ".join(participant_names) if participant_names else NOT_SPECIFIED
    headings = "\n".join(f"## {i}. {label}" for i, label in enumerate(MINUTES_SECTIONS, 1))
    return (
        "Please create comprehensive Minutes of Meeting (MOM) from the "
        "following meeting transcript.\n\n"
        f"Meeting Title: {meeting_title}\n"
        f"Participants: {participants}\n\n"
        f"Transcript:\n{transcript_text}\n\n"
        "Use exactly these markdown headings, in this order:\n"
        f"{headings}\n\n"
        "Under Action Items, name the responsible person if mentioned. "
        f"If a section has no content, write '{NOT_SPECIFIED}'. "
        "Make it professional, concise, and well-organized."
    )


# ── MinutesSynthesizer ───────────────────────────────────────────────────────


class MinutesSynthesizer:
    """Generates the seven-section minutes document.

    Args:
        llm_service: LLMService used for the completion call.
    """

    def __init__(self, llm_service: LLMService) -> None:
        self._llm_service = llm_service

    async def synthesize(
        self,
        transcript_text: str,
        meeting_title: str,
        participant_names: list[str],
    ) -> str:
        """Generate minutes for a transcript.

        Args:
            transcript_text: Full transcript text.
            meeting_title: Title shown in the prompt.
            participant_names: Attendee names; may be empty.

        Returns:
            Markdown minutes containing all seven section headings in order.

        Raises:
            RateLimited: Provider rate limit (propagated, never swallowed).
            AuthFailure, ProviderNotConfigured: Configuration problems.
            SynthesisFailed: Any other failure, including empty output.
        """
        logger.info(
            "minutes.generation_started",
            meeting_title=meeting_title,
            participants=len(participant_names),
            transcript_chars=len(transcript_text),
        )

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": _build_user_prompt(
                    transcript_text, meeting_title, participant_names
                ),
            },
        ]

        try:
            response = await self._llm_service.completion(
                messages=messages,
                max_tokens=MINUTES_MAX_TOKENS,
                temperature=MINUTES_TEMPERATURE,
                metadata={"stage": "minutes"},
            )
        except PROPAGATED_PROVIDER_ERRORS:
            raise
        except Exception as exc:
            logger.error("minutes.generation_failed", error_type=type(exc).__name__)
            raise SynthesisFailed("Failed to generate Minutes of Meeting") from exc

        content = (response.get("content") or "").strip()
        if not content:
            raise SynthesisFailed("Minutes generation returned empty output")

        minutes = normalize_minutes(content, participant_names)
        logger.info("minutes.generated", chars=len(minutes))
        return minutes


# ── Module-Level Helpers ─────────────────────────────────────────────────────


def normalize_minutes(text: str, participant_names: list[str] | None = None) -> str:
    """Re-assemble model output into the canonical seven sections.

    Body text under each recognized heading is kept verbatim. Text before
    the first heading (or the whole text, if no heading was recognized)
    goes into Meeting Overview. Repeated headings are merged. Empty
    Attendees falls back to the given participants, other empty
    sections to "Not specified".

    Args:
        text: Raw model output.
        participant_names: Used when the Attendees section is empty.

    Returns:
        Markdown document with "## <n>. <label>" headings in order.
    """
    canonical = {label.lower(): label for label in MINUTES_SECTIONS}
    bodies: dict[str, list[str]] = {label: [] for label in MINUTES_SECTIONS}

    matches = list(_HEADING_RE.finditer(text))
    preamble = text[: matches[0].start()] if matches else text
    if preamble.strip():
        bodies["Meeting Overview"].append(preamble.strip())

    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        body = text[match.end() : end].strip()
        if body:
            bodies[canonical[match.group("label").lower()]].append(body)

    parts: list[str] = []
    for number, label in enumerate(MINUTES_SECTIONS, 1):
        body = "\n\n".join(bodies[label])
        if not body:
            if label == "Attendees" and participant_names:
                body = "\n".join(f"- {name}" for name in participant_names)
            else:
                body = NOT_SPECIFIED
        parts.append(f"## {number}. {label}\n\n{body}")

    return "\n\n".join(parts)
