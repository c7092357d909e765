"""
Case-insensitive field lookup over raw feed records.

Field names drift across feed API versions (NOTIF_DATE, notif_date,
notifDate, ...), so every lookup takes an ordered list of candidates.
"""

from typing import Any, Iterable, Mapping, Optional


def pick(record: Any, candidates: Iterable[str]) -> Optional[Any]:
    """Return the value of the first candidate key present and not None.

    Keys are matched case-insensitively against the record's own casing, and
    candidate order is priority order. Returns None when nothing matches or
    the record is not a mapping.
    """
    if not isinstance(record, Mapping):
        return None

    lookup = {}
    for key, value in record.items():
        # First spelling wins if a record carries the same key twice
        lookup.setdefault(str(key).lower(), value)

    for candidate in candidates:
        value = lookup.get(candidate.lower())
        if value is not None:
            return value
    return None


def pick_text(record: Any, candidates: Iterable[str]) -> Optional[str]:
    """Like pick(), but coerce to a stripped string. Blank values count as absent."""
    if not isinstance(record, Mapping):
        return None

    for candidate in candidates:
        value = pick(record, [candidate])
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None
