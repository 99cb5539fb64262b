"""
Kouban Oracle Response Parser

Turns whatever the oracle sent back into a tagged result. Nothing here
raises: callers decide what a schema error or a non-script verdict means.
"""

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import ValidationError

from kouban.core.logging_config import get_logger
from kouban.llm.schemas import OraclePayload

logger = get_logger("llm.response_parser")

DEFAULT_NOT_SCRIPT_MESSAGE = "台本形式ではありません"

_JSON_OBJECT_PATTERN = re.compile(r'\{.*\}', re.DOTALL)


class ResponseKind(Enum):
    """Outcome of parsing one oracle response."""
    SUCCESS = "success"
    SCHEMA_ERROR = "schema_error"
    NOT_SCRIPT = "not_script"


@dataclass(frozen=True)
class ParsedResponse:
    """Tagged oracle response."""
    kind: ResponseKind
    payload: Optional[OraclePayload] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind == ResponseKind.SUCCESS


def extract_json_object(text: str) -> Optional[dict]:
    """Parse a JSON object from text, handling markdown code fences and chatter."""
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    text = text.strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        match = _JSON_OBJECT_PATTERN.search(text)
        if not match:
            return None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None

    return data if isinstance(data, dict) else None


def parse_oracle_response(raw: Any) -> ParsedResponse:
    """
    Parse a raw oracle response into a tagged result.

    Args:
        raw: Response body as text or an already-decoded dict

    Returns:
        ParsedResponse tagged SUCCESS, SCHEMA_ERROR or NOT_SCRIPT
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return ParsedResponse(ResponseKind.SCHEMA_ERROR, error="empty response")

    if isinstance(raw, (str, bytes)):
        text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
        data = extract_json_object(text)
        if data is None:
            return ParsedResponse(ResponseKind.SCHEMA_ERROR, error="response is not a JSON object")
    elif isinstance(raw, dict):
        data = raw
    else:
        return ParsedResponse(
            ResponseKind.SCHEMA_ERROR,
            error=f"unexpected response type: {type(raw).__name__}"
        )

    try:
        payload = OraclePayload.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()[:5]
        )
        logger.debug(f"Oracle response failed validation: {problems}")
        return ParsedResponse(ResponseKind.SCHEMA_ERROR, error=problems)

    if not payload.is_script:
        return ParsedResponse(
            ResponseKind.NOT_SCRIPT,
            payload=payload,
            error=payload.error_message or DEFAULT_NOT_SCRIPT_MESSAGE
        )

    return ParsedResponse(ResponseKind.SUCCESS, payload=payload)
