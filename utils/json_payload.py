"""Best-effort JSON extraction from free-form model output."""

import json
import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code block, if any."""
    content = (text or "").strip()
    if content.startswith("```"):
        content = content.split("```")[1]
        if content.startswith("json"):
            content = content[4:]
        content = content.strip()
    return content


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Parse the first JSON object found in text.

    Takes everything from the first '{' to the last '}'. Returns an empty
    dict when nothing parseable is found.
    """
    content = strip_code_fences(text)
    first_brace = content.find("{")
    last_brace = content.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        content = content[first_brace:last_brace + 1]

    try:
        parsed = json.loads(content)
    except (json.JSONDecodeError, TypeError) as e:
        logger.debug(f"Could not parse JSON payload: {e}")
        return {}

    if not isinstance(parsed, dict):
        return {}
    return parsed
