"""
Helpers for cleaning language-model replies.
"""

import json
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any

_FENCE = re.compile(r"```[ \t]*(?:postgresql|postgres|sqlite|mysql|json|sql)?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove ```lang / ``` markers wherever the model put them, then trim."""
    if not text:
        return ""
    return _FENCE.sub("", text.strip()).strip()


def parse_json_reply(text: str) -> Any:
    """
    Decode a JSON reply, tolerating code fences around it.
    Raises ValueError (json.JSONDecodeError) on malformed input.
    """
    return json.loads(strip_code_fences(text))


def sanitize_for_json(obj):
    """
    Recursively convert rows into JSON-safe values for prompts and responses.
    """
    if isinstance(obj, dict):
        return {str(k): sanitize_for_json(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [sanitize_for_json(v) for v in obj]
    elif isinstance(obj, Decimal):
        return float(obj)
    elif isinstance(obj, (datetime, date)):
        return obj.isoformat()
    elif not isinstance(obj, (str, int, float, bool, type(None))):
        return str(obj)
    return obj


def rows_to_json(rows, indent=None) -> str:
    return json.dumps(sanitize_for_json(rows), indent=indent)


def first_sentence(text: str, max_chars: int = 240) -> str:
    text = " ".join((text or "").split())
    match = re.search(r"(.+?[.!?])(\s|$)", text)
    sentence = match.group(1) if match else text
    if len(sentence) > max_chars:
        sentence = sentence[:max_chars].rsplit(" ", 1)[0].rstrip(",;:") + "..."
    return sentence
