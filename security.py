# security.py
"""
Input screening for the trip planner.

The destination string is pasted verbatim into the model prompt, so it is
sanitised and checked for prompt-injection phrasing before a TripRequest is
accepted.
"""
from __future__ import annotations

import logging
import re
from typing import List, Tuple

from fastapi import HTTPException, Request

log = logging.getLogger("security")

MAX_DESTINATION_LENGTH = 100
MAX_DESTINATION_WORDS = 10

# Phrasing that tries to steer the model instead of naming a place
PROMPT_INJECTION_PATTERNS = [
    r'\b(ignore|forget|disregard)\s+(the\s+)?(previous|above|all|these|your)\s+(instructions?|prompts?|rules?)\b',
    r'\b(act|behave|pretend|roleplay)\s+as\s+(a|an)?\s*\w+',
    r'\b(you\s+are\s+now|from\s+now\s+on)\b',
    r'\b(system|assistant)\s*:',
    r'<\s*/?\s*(system|assistant|user)\s*>',
    r'\b(jailbreak|bypass|override)\b',
    r'```',
    r'\b(return|output|respond\s+with)\s+(only\s+)?(json|markdown|code)\b',
]

COMPILED_PATTERNS = [re.compile(p, re.IGNORECASE | re.MULTILINE) for p in PROMPT_INJECTION_PATTERNS]

_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')

def sanitize_input(text: str, max_length: int = 500) -> str:
    """Drop control characters and collapse whitespace.

    Raises ValueError for non-strings and over-long input so it can run
    inside pydantic validators.
    """
    if not isinstance(text, str):
        raise ValueError("Input must be a string")
    if len(text) > max_length:
        log.warning("Input length exceeded", extra={"length": len(text), "max_length": max_length})
        raise ValueError(f"Input too long. Maximum {max_length} characters allowed.")

    cleaned = _CONTROL_CHARS.sub('', text.strip())
    return re.sub(r'\s+', ' ', cleaned).strip()

def detect_prompt_injection(text: str) -> Tuple[bool, List[str]]:
    """Return (is_suspicious, matched_patterns)."""
    matched = [PROMPT_INJECTION_PATTERNS[i] for i, p in enumerate(COMPILED_PATTERNS) if p.search(text)]

    special_ratio = len(re.findall(r'[^\w\s,.\'-]', text)) / max(len(text), 1)
    if special_ratio > 0.3:
        matched.append("excessive_special_characters")

    return bool(matched), matched

def validate_destination(destination: str) -> str:
    if not destination or not str(destination).strip():
        raise ValueError("Please enter a city name")

    clean = sanitize_input(destination, max_length=MAX_DESTINATION_LENGTH)

    is_suspicious, patterns = detect_prompt_injection(clean)
    if is_suspicious:
        log.warning("Suspicious destination rejected", extra={"destination": destination, "patterns": patterns})
        raise ValueError("Invalid destination. Please provide a valid city or location name.")

    if not re.search(r'[^\W\d_]', clean):
        raise ValueError("Destination must contain letters")
    if len(clean.split()) > MAX_DESTINATION_WORDS:
        raise ValueError("Destination name too complex")
    return clean

def check_request_size(request: Request, max_size: int = 1024 * 16) -> None:
    """Reject bodies whose declared size exceeds max_size (413)."""
    content_length = request.headers.get("content-length")
    if not content_length:
        return
    try:
        size = int(content_length)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid Content-Length header")
    if size > max_size:
        log.warning("Request size too large", extra={"size": size, "max_size": max_size})
        raise HTTPException(status_code=413, detail=f"Request too large. Maximum {max_size} bytes allowed.")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}

def security_headers_middleware():
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers[name] = value
        return response

    return add_security_headers
