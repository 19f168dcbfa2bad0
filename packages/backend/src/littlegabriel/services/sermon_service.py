"""Sermon generation — prompt building and JSON repair.

Learn: The model is asked for a JSON sermon, but replies are often wrapped
in ```json fences or carry trailing commas. parse_sermon() repairs the
common cases, falls back to the outermost {...} block, and validates the
result into the Sermon schema. Anything still unparseable is a 502.
"""

import json
import re
from typing import Optional

import structlog
from pydantic import ValidationError

from littlegabriel.errors import UpstreamError
from littlegabriel.schemas.llm import Sermon, SermonRequest
from littlegabriel.services.llm_service import GABRIEL_SYSTEM_PROMPT, LLMGateway

logger = structlog.get_logger()

SERMON_FORMAT = """{
  "title": "Sermon title",
  "introduction": "Opening paragraph introducing the topic",
  "mainPoints": [
    {
      "title": "Point 1 Title",
      "content": "Detailed explanation of point 1"
    }
  ],
  "conclusion": "Concluding thoughts",
  "scriptureReferences": ["Scripture references used"],
  "illustrations": ["Optional illustrative stories or examples"]
}"""

SERMON_INSTRUCTIONS = (
    "You are generating a sermon. Focus exclusively on creating a "
    "well-structured, biblically sound sermon based on the request. Your "
    "response MUST be a valid JSON object with exactly this structure:\n\n"
    + SERMON_FORMAT
    + "\n\nUse double quotes for property names and string values. Do not "
    "include markdown or any text before or after the JSON."
)


class SermonParseError(UpstreamError):
    """The model's reply could not be turned into a sermon."""

    def __init__(self, detail: str):
        super().__init__("Failed to parse sermon response", detail)


def _band(minutes: int, short: str, medium: str, long: str) -> str:
    if minutes <= 15:
        return short
    if minutes <= 30:
        return medium
    return long


def main_point_range(minutes: int) -> str:
    return _band(minutes, "2-3", "3-4", "4-5")


def build_prompt(req: SermonRequest) -> str:
    minutes = req.length_minutes
    title_line = (
        f"Title: {req.title} (or suggest a better one if appropriate)"
        if req.title
        else "Please suggest an appropriate title."
    )
    lines = [
        "Please create a sermon with the following specifications:",
        title_line,
        f"Bible Passage: {req.bible_passage}",
        f"Theme: {req.theme}",
        f"Target Audience: {req.audience_type}",
        f"Approximate Length: {minutes} minutes",
    ]
    if req.additional_notes:
        lines.append(f"Additional Notes: {req.additional_notes}")
    lines += [
        "",
        "The sermon should include:",
        "1. A compelling introduction that explains the context of the scripture",
        f"2. {main_point_range(minutes)} main points with Biblical support and explanation",
        "3. Practical applications for daily life",
        "4. A powerful conclusion with a call to action",
        "5. Additional scripture references that support the message",
        "",
        f"Adjust the length of the content to a {minutes}-minute sermon: the content "
        f"should be {_band(minutes, 'concise and focused', 'moderately detailed', 'comprehensive and detailed')}, "
        f"the introduction {_band(minutes, 'brief', 'moderate', 'thorough')}, and each main point "
        f"{_band(minutes, 'briefly explained', 'well-developed', 'extensively developed with multiple sub-points')}.",
        "",
        "RESPONSE FORMAT: Your response must be a valid JSON object with the following structure:",
        SERMON_FORMAT,
    ]
    return "\n".join(lines)


_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_OUTER_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def _strip_fences(text: str) -> str:
    match = _FENCE.search(text)
    return match.group(1).strip() if match else text.strip()


def _loads(text: str) -> Optional[dict]:
    try:
        data = json.loads(_TRAILING_COMMA.sub(r"\1", text))
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def parse_sermon(text: str) -> Sermon:
    """Parse a model reply into a Sermon. Raises SermonParseError."""
    cleaned = _strip_fences(text)
    data = _loads(cleaned)
    if data is None:
        match = _OUTER_OBJECT.search(cleaned)
        data = _loads(match.group(0)) if match else None
    if data is None:
        raise SermonParseError("Response was not valid JSON")
    try:
        return Sermon.model_validate(data)
    except ValidationError as e:
        raise SermonParseError(f"Invalid sermon structure: {e.error_count()} errors")


async def generate_sermon(gateway: LLMGateway, req: SermonRequest) -> Sermon:
    prompt = build_prompt(req)
    if gateway.use_assistant_mode():
        reply = await gateway.run_assistant(prompt, instructions=SERMON_INSTRUCTIONS)
    else:
        reply = await gateway.complete(
            [
                {"role": "system", "content": GABRIEL_SYSTEM_PROMPT + "\n\n" + SERMON_INSTRUCTIONS},
                {"role": "user", "content": prompt},
            ],
            max_tokens=4000,
        )
    try:
        return parse_sermon(reply)
    except SermonParseError:
        logger.warning("sermon.parse_failed", reply_length=len(reply))
        raise
