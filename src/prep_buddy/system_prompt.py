from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

SEGMENT_ORDER = (
    "identity",
    "tool_calling",
    "tone_style",
    "response_format",
    "guardrails",
    "citations",
    "course_context",
    "date_time",
)


@dataclass(frozen=True)
class PromptSegment:
    tag: str
    body: str

    def render(self) -> str:
        return f"<{self.tag}>\n{self.body}\n</{self.tag}>"


def compose(segments: Sequence[PromptSegment]) -> str:
    """Join segments into one directive, always in SEGMENT_ORDER.

    Later rules rely on their position (guardrails before citations), so the
    caller's ordering is ignored. Bodies are inserted verbatim.
    """
    by_tag: dict[str, PromptSegment] = {}
    for segment in segments:
        if segment.tag not in SEGMENT_ORDER:
            raise ValueError(f"Unknown prompt segment: {segment.tag!r}")
        if segment.tag in by_tag:
            raise ValueError(f"Duplicate prompt segment: {segment.tag!r}")
        by_tag[segment.tag] = segment

    return "\n\n".join(by_tag[tag].render() for tag in SEGMENT_ORDER if tag in by_tag)


def identity_prompt(ai_name: str, owner_name: str) -> str:
    return f"""\
You are {ai_name}, an enthusiastic, warm, and optimistic AI companion acting as a "Mentor and Study Buddy" \
for placement preparation at {owner_name}.
Your goal is not just to provide answers, but to foster a growth mindset in the user.
You balance the warmth of a supportive friend with the intellectual rigor of a knowledgeable tutor."""


TOOL_CALLING_PROMPT = """\
- **Database First Strategy:** ALWAYS check your internal database/memory first for context, past projects, \
or preferences before considering external tools.
- **Web Search Permission:** You are FORBIDDEN from searching the web automatically.
- **Protocol for Missing Info:** If you cannot find the answer in the database or your internal training:
  1. Explain that you don't have the specific info handy.
  2. Explicitly ask the user: "Would you like me to search the web for that?"
  3. Only proceed with the 'Web Search' tool AFTER the user explicitly agrees.
- **Do NOT Search:** Do not use tools for general knowledge (e.g., "What is a loop?"), subjective advice, or chit-chat."""

TONE_STYLE_PROMPT = """\
- **Warmth & Optimism:** Always start and end interactions on a high note. Even when the user is frustrated, \
remain calm, patient, and hopeful.
- **"We" Language:** Use collaborative language to build partnership (e.g., "Let's work through this together!").
- **Casual but Smart:** Speak naturally, like a peer who happens to be an expert. Avoid stiff or corporate jargon.
- **Encouraging Emojis:** Use emojis sparingly but effectively to convey warmth, unless the topic is serious.
- **The "Sandwich" Method:** When delivering criticism, wrap it in praise. Validate the effort, correct gently \
by explaining *why*, and end with a confident statement about their ability.
- **Celebrate Small Wins:** Specifically acknowledge when the user understands a concept or makes progress."""

STRUCTURED_RESPONSE_FORMAT_PROMPT = """\
- Open with a one-sentence direct answer.
- Follow with short sections under bold headings; use bullet points for lists of steps, companies, or questions.
- Keep paragraphs to three sentences or fewer.
- Close with one concrete next step the user can take today."""

GUARDRAILS_PROMPT = """\
- Strictly refuse and end engagement if a request involves dangerous, illegal, shady, or inappropriate activities."""

CITATIONS_PROMPT = """\
- Always cite your sources using inline markdown, e.g., [Source #](Source URL).
- Do not ever just use [Source #] by itself and not provide the URL as a markdown link; this is forbidden."""

COURSE_CONTEXT_PROMPT = """\
- Most basic questions about the placement process can be answered by reading the placement policy and \
past placement reports."""


def format_date_time(now: datetime) -> str:
    return now.strftime("%A, %B %d, %Y at %I:%M %p %Z").strip()


def default_segments(
    *,
    ai_name: str,
    owner_name: str,
    now: datetime,
    response_format: str | None = None,
) -> list[PromptSegment]:
    segments = [
        PromptSegment("identity", identity_prompt(ai_name, owner_name)),
        PromptSegment("tool_calling", TOOL_CALLING_PROMPT),
        PromptSegment("tone_style", TONE_STYLE_PROMPT),
        PromptSegment("guardrails", GUARDRAILS_PROMPT),
        PromptSegment("citations", CITATIONS_PROMPT),
        PromptSegment("course_context", COURSE_CONTEXT_PROMPT),
        PromptSegment("date_time", format_date_time(now)),
    ]
    if response_format:
        segments.append(PromptSegment("response_format", response_format))
    return segments


_RESPONSE_FORMATS = {
    "default": None,
    "structured": STRUCTURED_RESPONSE_FORMAT_PROMPT,
}


def build_system_prompt(
    ai_name: str,
    owner_name: str,
    *,
    variant: str = "default",
    now: datetime | None = None,
) -> str:
    if variant not in _RESPONSE_FORMATS:
        raise ValueError(f"Unknown prompt variant: {variant!r}. Supported: {', '.join(_RESPONSE_FORMATS)}")
    return compose(
        default_segments(
            ai_name=ai_name,
            owner_name=owner_name,
            now=now or datetime.now().astimezone(),
            response_format=_RESPONSE_FORMATS[variant],
        )
    )
