"""Lexicographically sortable identifiers (ULID).

A ULID is 48 bits of millisecond timestamp followed by 80 random bits,
rendered as 26 characters of Crockford base32.  Generation is delegated to
``python-ulid``, whose generator is monotonic: within one millisecond the
random part is incremented, so identifiers minted later always sort after
earlier ones.
"""

from __future__ import annotations

import re

from ulid import ULID

ULID_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"

_ULID_RE = re.compile(ULID_PATTERN)


def new_ulid() -> str:
    """Return a fresh ULID string."""
    return str(ULID())


def is_ulid(value: object) -> bool:
    return isinstance(value, str) and _ULID_RE.match(value) is not None
