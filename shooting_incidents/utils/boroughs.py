"""Borough identifiers for the NYPD shooting incident dataset."""

from __future__ import annotations

import re
from typing import Optional, Tuple


# Closed set of regions covered by the dataset, spelled as they appear in BORO.
BOROUGHS: Tuple[str, ...] = (
    "BRONX",
    "BROOKLYN",
    "MANHATTAN",
    "QUEENS",
    "STATEN ISLAND",
)

_WHITESPACE = re.compile(r"\s+")


def normalize_borough(name: Optional[str]) -> Optional[str]:
    """Upper-case and collapse whitespace; unknown names are kept as-is so they can be reported."""
    if name is None or not isinstance(name, str):
        return None
    cleaned = _WHITESPACE.sub(" ", name).strip().upper()
    return cleaned or None


__all__ = ["BOROUGHS", "normalize_borough"]
