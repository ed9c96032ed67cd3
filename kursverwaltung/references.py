"""
Encoding and decoding of applookup references.

A reference is the REST URL of the target record:
``{base_url}/apps/{app_id}/records/{record_id}`` where both ids are
24 hex characters. A bare record id is accepted when decoding.
"""

import re
from typing import Any, Optional

from .config import DEFAULT_BASE_URL

_ID = r"[0-9a-fA-F]{24}"
_REFERENCE_RE = re.compile(
    rf"(?:^|/)apps/(?P<app_id>{_ID})/records/(?P<record_id>{_ID})/?$"
)
_BARE_ID_RE = re.compile(rf"^(?P<record_id>{_ID})$")


def create_record_url(app_id: str, record_id: str, base_url: str = DEFAULT_BASE_URL) -> str:
    return f"{base_url.rstrip('/')}/apps/{app_id}/records/{record_id}"


def extract_record_id(reference: Any, app_id: Optional[str] = None) -> Optional[str]:
    """
    Return the record id a reference points to, or None.

    Never raises: None, non-strings, malformed strings and (when app_id is
    given) references into another application all decode to None.
    """
    if not isinstance(reference, str):
        return None
    ref = reference.strip()
    if not ref:
        return None

    m = _REFERENCE_RE.search(ref)
    if m:
        if app_id is not None and m.group("app_id").lower() != app_id.lower():
            return None
        return m.group("record_id")

    m = _BARE_ID_RE.match(ref)
    if m:
        return m.group("record_id")
    return None
