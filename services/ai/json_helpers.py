"""
Lenient JSON parsing for model output.

Models asked for JSON still wrap it in code fences, add a sentence before
or after it, leave trailing commas, or return the object double-encoded as
a string. Each repair below is tried in order, cheapest first.
"""
import json
import re
import unicodedata
from typing import Any, Dict, List, Literal, overload

_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?|\n?```\s*$")


def clean_control_chars(s: str) -> str:
    return "".join(ch for ch in s if ch in "\n\t" or unicodedata.category(ch)[0] != "C")


def strip_code_fences(s: str) -> str:
    return _FENCE_RE.sub("", s.strip())


def _outermost(text: str, open_ch: str, close_ch: str) -> str:
    start, end = text.find(open_ch), text.rfind(close_ch)
    if start == -1 or end <= start:
        return ""
    return text[start:end + 1]


def _candidates(text: str):
    yield text
    yield _TRAILING_COMMA_RE.sub(r"\1", text)
    # prose around the payload
    for open_ch, close_ch in (("{", "}"), ("[", "]")):
        sliced = _outermost(text, open_ch, close_ch)
        if sliced and sliced != text:
            yield sliced
            yield _TRAILING_COMMA_RE.sub(r"\1", sliced)


def parse_model_json(text: str) -> Any:
    """json.JSONDecodeError (a ValueError) when no repair yields valid JSON."""
    cleaned = strip_code_fences(clean_control_chars(text or "")).strip()

    error = None
    for candidate in _candidates(cleaned):
        try:
            obj = json.loads(candidate)
            break
        except json.JSONDecodeError as exc:
            error = error or exc
    else:
        raise error or json.JSONDecodeError("Empty model output", cleaned, 0)

    if isinstance(obj, str):
        obj = json.loads(obj)
    return obj


@overload
def extract_json(text: str, expect: Literal["object"] = "object") -> Dict[str, Any]: ...
@overload
def extract_json(text: str, expect: Literal["array"]) -> List[Any]: ...


def extract_json(text: str, expect: Literal["object", "array"] = "object"):
    """Parse model output and check its top-level shape; ValueError otherwise."""
    obj = parse_model_json(text)

    if expect == "array":
        if not isinstance(obj, list):
            raise ValueError("Expected a JSON array")
        return obj

    if not isinstance(obj, dict):
        raise ValueError("Expected a JSON object")
    return obj
