"""Turn the model's free-text reply into a structured analysis.

The gateway gives back one text blob with no contract on its format.
Models usually wrap the JSON in a markdown fence, sometimes tagged
``json``, sometimes not, and sometimes skip the fence altogether. Anything
that does not decode to an object matching ``AnalysisResult`` is a soft
failure: the caller still gets the raw text and decides how to show it.
"""
import enum
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from schemas import AnalysisResult

logger = logging.getLogger(__name__)

_JSON_FENCE = re.compile(r'```json\s*([\s\S]*?)\s*```')
_ANY_FENCE = re.compile(r'```\s*([\s\S]*?)\s*```')


class ReplyStatus(enum.Enum):
    SUCCESS = "success"
    SOFT_FAILURE = "soft_failure"


@dataclass
class ParsedReply:
    status: ReplyStatus
    raw: str
    data: Optional[Dict[str, Any]] = None
    validation_errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is ReplyStatus.SUCCESS

    def to_payload(self) -> Dict[str, Any]:
        """Wire form sent back under ``analysis``."""
        if self.ok:
            return self.data
        payload = {"rawResponse": self.raw, "parseError": True}
        if self.validation_errors:
            payload["validationErrors"] = self.validation_errors
        return payload


def extract_json_text(text: str) -> str:
    match = _JSON_FENCE.search(text) or _ANY_FENCE.search(text)
    candidate = match.group(1) if match else text
    return candidate.strip()


def _validation_messages(err: ValidationError) -> List[str]:
    messages = []
    for e in err.errors():
        where = ".".join(str(p) for p in e.get("loc", ()))
        messages.append(f"{where}: {e.get('msg', 'invalid')}")
    return messages


def parse_structured_reply(text: str) -> ParsedReply:
    try:
        data = json.loads(extract_json_text(text))
    except (ValueError, RecursionError) as e:
        # ValueError covers JSONDecodeError and over-long integer literals
        logger.warning("AI reply is not valid JSON: %s", e)
        return ParsedReply(ReplyStatus.SOFT_FAILURE, raw=text)

    if not isinstance(data, dict):
        logger.warning("AI reply decoded to %s, expected an object", type(data).__name__)
        return ParsedReply(ReplyStatus.SOFT_FAILURE, raw=text)

    try:
        AnalysisResult.model_validate(data)
    except ValidationError as e:
        errors = _validation_messages(e)
        logger.warning("AI reply does not match the report shape: %s", "; ".join(errors))
        return ParsedReply(ReplyStatus.SOFT_FAILURE, raw=text, validation_errors=errors)

    return ParsedReply(ReplyStatus.SUCCESS, raw=text, data=data)
