"""
Pattern-based extraction of comparable values from free-text answers
"""

import re
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional, Pattern

from .rules import DEFAULT_RULES

TIME_TOKEN = re.compile(r"\d{1,2}:\d{2}")
INTEGER_TOKEN = re.compile(r"\d+")
LANGUAGE_SUFFIX = re.compile(r"/(?:fr|nl)/?$", re.IGNORECASE)

_URL_TRAILING_PUNCTUATION = ".,;:"
_PHONE_SEPARATORS = re.compile(r"[\s().-]")


@dataclass(frozen=True)
class ExtractedValues:
    """Typed values found in one answer; None means the value is absent"""

    phone: Optional[str] = None
    url: Optional[str] = None
    email: Optional[str] = None
    time_range: Optional[str] = None
    day_count: Optional[str] = None
    amount: Optional[str] = None
    postal_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)


def normalize_phone(raw: str) -> str:
    """Drop separators so '+32 2 123.45.67' and '+32-2-1234567' compare equal."""
    return _PHONE_SEPARATORS.sub("", raw)


def strip_language_suffix(url: str) -> str:
    """Remove a trailing /fr or /nl path segment from a URL."""
    return LANGUAGE_SUFFIX.sub("", url)


def find_times(text: str) -> List[str]:
    """All HH:MM tokens in order of appearance."""
    return TIME_TOKEN.findall(text or "")


def pad_time(token: str) -> str:
    """Zero-pad the hour of an HH:MM token."""
    hours, minutes = token.split(":")
    return f"{int(hours):02d}:{minutes}"


def find_integers(text: str) -> List[str]:
    return INTEGER_TOKEN.findall(text or "")


class ValueExtractor:
    """
    Runs one independent regex per value kind over a text.

    Each extractor returns the first match only. A pattern with a capture group
    yields its first group, otherwise the whole match.
    """

    FIELD_PATTERNS = {
        "phone": "phone",
        "url": "url",
        "email": "email",
        "time_range": "time_range",
        "day_count": "days",
        "amount": "amount",
        "postal_code": "postal_code",
    }

    def __init__(self, patterns: Optional[Dict[str, str]] = None):
        source = dict(DEFAULT_RULES["drift"]["patterns"])
        if patterns:
            source.update(patterns)
        self._compiled: Dict[str, Pattern] = {
            name: re.compile(pattern, re.IGNORECASE) for name, pattern in source.items()
        }

    def _first(self, pattern_name: str, text: str) -> Optional[str]:
        pattern = self._compiled.get(pattern_name)
        if pattern is None:
            return None
        match = pattern.search(text)
        if not match:
            return None
        value = match.group(1) if pattern.groups else match.group(0)
        return value.strip() if value else None

    def extract(self, text: Optional[str]) -> ExtractedValues:
        """Extract every supported value from text."""
        if not text:
            return ExtractedValues()

        raw = {
            field: self._first(pattern_name, text)
            for field, pattern_name in self.FIELD_PATTERNS.items()
        }

        if raw["phone"]:
            raw["phone"] = normalize_phone(raw["phone"])
        if raw["url"]:
            raw["url"] = raw["url"].rstrip(_URL_TRAILING_PUNCTUATION)
        if raw["time_range"]:
            # "9:00 a 17:00" and "09:00 tot 17:00" both become "09:00-17:00"
            raw["time_range"] = "-".join(pad_time(t) for t in find_times(raw["time_range"]))

        return ExtractedValues(**raw)

    def extract_url(self, text: Optional[str]) -> Optional[str]:
        if not text:
            return None
        url = self._first("url", text)
        return url.rstrip(_URL_TRAILING_PUNCTUATION) if url else None


_default_extractor = ValueExtractor()


def extract_values(text: Optional[str]) -> ExtractedValues:
    """Extract values with the default patterns."""
    return _default_extractor.extract(text)
