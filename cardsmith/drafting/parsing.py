# cardsmith/drafting/parsing.py
"""Parse model output into a JSON object."""

import json
from typing import Optional


def extract_first_object(text: str) -> Optional[str]:
    """
    Return the first balanced top-level ``{...}`` span in ``text``.

    Braces inside JSON strings are ignored.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:index + 1]
        # unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def parse_json_object(text: Optional[str]) -> Optional[dict]:
    """Parse ``text`` directly, else its first embedded object; None on failure."""
    if not text or not text.strip():
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        candidate = extract_first_object(text)
        if candidate is None:
            return None
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


def parse_confidence(data: Optional[dict]) -> Optional[float]:
    """``quality.confidence`` clamped to 0..100, or None when absent or not numeric."""
    if not isinstance(data, dict):
        return None
    quality = data.get("quality")
    if not isinstance(quality, dict):
        return None
    value = quality.get("confidence")
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        confidence = float(value)
    except ValueError:
        return None
    if confidence != confidence:  # NaN
        return None
    return max(0.0, min(100.0, confidence))
