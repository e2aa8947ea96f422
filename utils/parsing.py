"""Structured extraction of JSON objects from free-form model text."""

import json
import re

from core.state import Extraction

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)


def strip_fences(text):
    """Strip markdown code fences from LLM output if present."""
    match = _FENCE_RE.search(text)
    return match.group(1).strip() if match else text.strip()


def first_brace_span(text):
    """Return the first balanced {...} substring of text, or None.

    Braces inside JSON string literals are ignored, so markup such as
    "<style>a { color: red }</style>" inside a value does not end the span early.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # Unbalanced from this brace; try the next one.
        start = text.find("{", start + 1)
    return None


def extract_json(text, validate=None):
    """Locate, parse and validate the first JSON object in text.

    Args:
        text: Raw model response.
        validate: Optional callable(dict) -> str | None returning an error
                  message when the parsed object has the wrong shape.

    Returns:
        Extraction.success(dict), Extraction.malformed(reason) or Extraction.empty().
    """
    if text is None or not text.strip():
        return Extraction.empty()

    span = first_brace_span(strip_fences(text))
    if span is None:
        # Fences sometimes wrap only part of the object; retry on the raw text.
        span = first_brace_span(text)
    if span is None:
        return Extraction.malformed("no JSON object found")

    try:
        parsed = json.loads(span)
    except json.JSONDecodeError as e:
        return Extraction.malformed(f"invalid JSON: {e.msg}")

    if not isinstance(parsed, dict):
        return Extraction.malformed("JSON value is not an object")

    if validate is not None:
        problem = validate(parsed)
        if problem:
            return Extraction.malformed(problem)

    return Extraction.success(parsed)
