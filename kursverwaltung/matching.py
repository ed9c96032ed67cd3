"""
Fuzzy matching of freeform names against loaded records.

Two names match when, after lowercasing and trimming, either one contains
the other. The first matching record in collection order wins; there is
no ranking between several matches. This tolerates partial names ("jonas")
and extraction noise at the cost of false positives on short names. An
empty name is contained in every name, so callers skip absent queries.
"""

from typing import Any, Callable, Iterable, Optional, Sequence

from .models import Record
from .references import create_record_url

NameExtractor = Callable[[Record], str]


def normalize_name(s: Any) -> str:
    if s is None:
        return ""
    return str(s).strip().lower()


def join_name_parts(record: Record, *attrs: str) -> str:
    """Non-empty attribute values of a record joined by a single space."""
    parts = []
    for a in attrs:
        v = record.fields.get(a)
        if v is None:
            continue
        s = str(v).strip()
        if s:
            parts.append(s)
    return " ".join(parts)


def full_name(record: Record) -> str:
    return join_name_parts(record, "vorname", "nachname")


def attribute(name: str) -> NameExtractor:
    """Extractor reading a single attribute as the record's name."""
    def extract(record: Record) -> str:
        return join_name_parts(record, name)
    return extract


def match_name(query: Any, candidates: Sequence[Any]) -> bool:
    """True if query and any candidate contain one another (case-insensitive)."""
    q = normalize_name(query)
    for c in candidates:
        n = normalize_name(c)
        if q in n or n in q:
            return True
    return False


def find_best_match(
    query: Any,
    records: Iterable[Record],
    name_extractor: NameExtractor,
) -> Optional[Record]:
    """Return the first record whose name matches query, or None."""
    for record in records:
        if match_name(query, [name_extractor(record)]):
            return record
    return None


def resolve_lookup(
    query: Any,
    records: Iterable[Record],
    name_extractor: NameExtractor,
    app_id: str,
) -> Optional[str]:
    """Match query against records and encode the hit as a lookup reference."""
    match = find_best_match(query, records, name_extractor)
    if match is None:
        return None
    return create_record_url(app_id, match.record_id)
