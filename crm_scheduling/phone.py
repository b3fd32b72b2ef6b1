"""Phone number search candidates.

The CRM stores phone numbers as free text with no normalized index, so a
lookup has to try every common way a number could have been typed in.
``generate_candidates`` enumerates those representations for a LIKE search.
"""

from __future__ import annotations

import re

_NON_DIGITS = re.compile(r"\D")


def digits_only(raw: str) -> str:
    """Strip everything except 0-9."""
    return _NON_DIGITS.sub("", raw)


def generate_candidates(raw: str) -> list[str]:
    """Return the distinct textual forms ``raw`` may be stored under.

    Always starts with ``raw`` and its digits.  Ten or more digits are
    treated as a US number (the last ten digits win, so a leading country
    code is dropped); exactly seven digits as a local number without area
    code.  Any other length yields only the first two entries.

    >>> generate_candidates("239-290-1984")[:4]
    ['239-290-1984', '2392901984', '(239) 290-1984', '239.290.1984']
    """
    digits = digits_only(raw)
    candidates: dict[str, None] = {raw: None, digits: None}

    if len(digits) >= 10:
        last10 = digits[-10:]
        area, prefix, line = last10[:3], last10[3:6], last10[6:]
        for form in (
            f"{area}-{prefix}-{line}",
            f"({area}) {prefix}-{line}",
            f"{area}.{prefix}.{line}",
            f"{area}{prefix}{line}",
            f"1{area}{prefix}{line}",
            f"+1{area}{prefix}{line}",
            f"+1-{area}-{prefix}-{line}",
            # Without area code
            f"{prefix}-{line}",
            f"{prefix}{line}",
        ):
            candidates.setdefault(form, None)

    elif len(digits) == 7:
        prefix, line = digits[:3], digits[3:]
        candidates.setdefault(f"{prefix}-{line}", None)
        candidates.setdefault(f"{prefix}.{line}", None)

    return list(candidates)
