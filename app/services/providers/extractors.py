"""Ordered value extractors for scraped or fetched market data.

Each extractor looks at a response body and returns either a value that
falls inside the caller's sanity band or None. Providers try them in order
and stop at the first hit, so a page layout change only breaks one strategy.
"""
import html
import json
import re
from abc import ABC, abstractmethod
from typing import Iterable, Optional

_TAG_RE = re.compile(r'<[^>]+>')
_SPACE_RE = re.compile(r'\s+')
_AMOUNT = r'([0-9][0-9,]*(?:\.[0-9]+)?)'
_RUPEE = r'(?:₹|Rs\.?|INR)'


def page_text(body: str) -> str:
    """Flatten HTML into one line of plain text."""
    text = html.unescape(_TAG_RE.sub(' ', body))
    return _SPACE_RE.sub(' ', text)


def parse_amount(raw: str) -> Optional[float]:
    """Parse '9,840.50' style amounts. Returns None on garbage."""
    try:
        return float(raw.replace(',', ''))
    except (TypeError, ValueError):
        return None


def in_band(value: Optional[float], band: tuple[float, float]) -> bool:
    if value is None:
        return False
    low, high = band
    return low <= value <= high


class Extractor(ABC):
    """One strategy for pulling a number out of a response body."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def candidates(self, body: str) -> Iterable[float]:
        """Yield every number this strategy can find, in page order."""
        pass

    def extract(self, body: str, band: tuple[float, float]) -> Optional[float]:
        """Return the first candidate inside band, or None."""
        for value in self.candidates(body):
            if in_band(value, band):
                return value
        return None


class JSONFieldExtractor(Extractor):
    """Read a numeric field from a JSON document (e.g. GoldAPI's price_gram_24k)."""

    def __init__(self, field: str, name: Optional[str] = None):
        self._field = field
        self._name = name or f'json:{field}'

    @property
    def name(self) -> str:
        return self._name

    def candidates(self, body: str) -> Iterable[float]:
        try:
            data = json.loads(body)
        except (json.JSONDecodeError, TypeError):
            return []
        if not isinstance(data, dict):
            return []
        value = data.get(self._field)
        try:
            return [float(value)]
        except (TypeError, ValueError):
            return []


class RegexExtractor(Extractor):
    """Match a pattern against the flattened page text; group 1 is the amount."""

    def __init__(self, name: str, pattern: str):
        self._name = name
        self._pattern = re.compile(pattern, re.IGNORECASE)

    @property
    def name(self) -> str:
        return self._name

    def candidates(self, body: str) -> Iterable[float]:
        for match in self._pattern.finditer(page_text(body)):
            value = parse_amount(match.group(1))
            if value is not None:
                yield value


# 24K rate for 1 gram in a rate table: "24 Carat ... 1 Gram ₹ 9,840"
PER_GRAM_TABLE_PATTERN = (
    r'24\s*(?:K|Kt|Carat)\b.{0,200}?\b1\s*(?:Gram|Gm|g)\b\s*' + _RUPEE + r'\s*' + _AMOUNT
)
# Headline rate: "24K Gold Rate in Hyderabad today is ₹9,840"
HEADLINE_PATTERN = r'24\s*(?:K|Kt|Carat)\b.{0,160}?' + _RUPEE + r'\s*' + _AMOUNT
# Any rupee amount on the page
ANY_RUPEE_PATTERN = _RUPEE + r'\s*' + _AMOUNT


def default_gold_extractors() -> list[Extractor]:
    """Strategies for the gold page, strictest first."""
    return [
        JSONFieldExtractor('price_gram_24k', name='goldapi-json'),
        RegexExtractor('per-gram-table', PER_GRAM_TABLE_PATTERN),
        RegexExtractor('headline', HEADLINE_PATTERN),
        RegexExtractor('any-rupee-amount', ANY_RUPEE_PATTERN),
    ]
