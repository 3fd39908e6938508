"""Extraction of queries and JSON objects from free-text model replies."""

import json
import re
from typing import Any

NUMBERED_LINE = re.compile(r"^\s*\d+[.)]\s+(.+?)\s*$")
MIN_FALLBACK_LENGTH = 5

# Lines starting with (or containing) these are commentary, not queries.
META_PHRASES = (
    "here are",
    "here is",
    "cannot generate",
    "can't generate",
    "unable to generate",
    "i cannot",
    "i can't",
    "i'm sorry",
    "sorry",
    "as an ai",
    "search queries:",
    "queries:",
)

_QUOTES = "\"'`“”‘’"


def strip_quotes(text: str) -> str:
    return text.strip().strip(_QUOTES).strip()


def _is_meta(line: str) -> bool:
    lowered = line.lower()
    return any(phrase in lowered for phrase in META_PHRASES)


def _normalized(text: str) -> str:
    return " ".join(text.lower().split())


def parse_query_list(text: str, *, original_query: str, limit: int) -> list[str]:
    """Parse a numbered list of queries, falling back to plausible free lines.

    The original query (case/whitespace-insensitive) and duplicates are
    dropped. Returns at most ``limit`` entries, possibly none.
    """
    lines = [line for line in (text or "").splitlines() if line.strip()]
    original = _normalized(original_query)

    def accept(candidates: list[str]) -> list[str]:
        seen: set[str] = set()
        accepted = []
        for candidate in candidates:
            query = strip_quotes(candidate)
            key = _normalized(query)
            if not query or key == original or key in seen:
                continue
            seen.add(key)
            accepted.append(query)
        return accepted

    numbered = [match.group(1) for line in lines if (match := NUMBERED_LINE.match(line))]
    queries = accept(numbered)

    if not numbered:
        # Free-line fallback: bullets and markdown are peeled off first.
        free = [line.strip().lstrip("-*•#").strip() for line in lines]
        queries = accept(
            [line for line in free if len(line) >= MIN_FALLBACK_LENGTH and not _is_meta(line)]
        )

    return queries[:limit]


def extract_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` block, honoring JSON string escapes."""
    if not text:
        return None

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
                    return text[start : index + 1]
        # Unbalanced from this brace; try the next one.
        start = text.find("{", start + 1)
    return None


def parse_json_object(text: str) -> dict[str, Any] | None:
    """Decode the first balanced JSON object in ``text``, or ``None``."""
    block = extract_json_object(text)
    if block is None:
        return None
    try:
        value = json.loads(block)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None
