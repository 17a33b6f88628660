"""
Region name reconciliation.

The boundary document and the rainfall table were authored independently
and spell the same regions differently ("Odisha" vs "ORISSA"). Names are
first normalized to a canonical key, then mapped through an alias table
from the boundary scheme (A) to the rainfall scheme (B).

Canonical identity = scheme B key.
"""

import re
import logging
from typing import Dict, Iterable, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

_STRIP_RE = re.compile(r"[^\w&\s]")
_SPACE_RE = re.compile(r"\s+")


def normalize_name(name: Optional[str]) -> str:
    """
    Canonicalize a free-text region name.

    Lower-cases, drops everything except word characters, '&' and
    whitespace, collapses whitespace runs and trims. Never fails;
    None or empty input gives "".

    Args:
        name: Display name as found in either dataset

    Returns:
        Canonical key
    """
    if not name:
        return ""
    key = _STRIP_RE.sub("", str(name).lower())
    return _SPACE_RE.sub(" ", key).strip()


# Boundary spelling (scheme A) -> IMD rainfall spelling (scheme B).
# Only regions whose normalized keys differ need an entry.
DEFAULT_ALIASES: Dict[str, str] = {
    "andaman and nicobar islands": "andaman & nicobar islands",
    "odisha": "orissa",
    "marathwada": "matathwada",
    "nagaland manipur mizoram & tripura": "naga mani mizo tripura",
    "nmmt": "naga mani mizo tripura",
    "subhimalayan west bengal & sikkim": "sub himalayan west bengal & sikkim",
    "shwb & sikkim": "sub himalayan west bengal & sikkim",
    "haryana chandigarh & delhi": "haryana delhi & chandigarh",
    "haryana": "haryana delhi & chandigarh",
    "saurashtra kutch & diu": "saurashtra & kutch",
    "gujarat region dadra & nagar haveli": "gujarat region",
    "coastal andhra pradesh & yanam": "coastal andhra pradesh",
    "jammu & kashmir and ladakh": "jammu & kashmir",
    "jammu kashmir & ladakh": "jammu & kashmir",
    "uttaranchal": "uttarakhand",
    "n i karnataka": "north interior karnataka",
    "s i karnataka": "south interior karnataka",
    "tamilnadu": "tamil nadu",
    "tamil nadu & puducherry": "tamil nadu",
    "tamil nadu puducherry & karaikal": "tamil nadu",
    "kerala & mahe": "kerala",
    "konkan goa": "konkan & goa",
}


class AliasTable:
    """
    Bidirectional mapping between two naming schemes.

    The forward table is authoritative; the reverse table is derived
    from it at construction. If two scheme A keys map to the same
    scheme B key, the reverse lookup returns whichever was registered
    last.
    """

    def __init__(self, mapping: Optional[Mapping[str, str]] = None):
        self._forward: Dict[str, str] = {}
        self._reverse: Dict[str, str] = {}
        if mapping:
            self.update(mapping.items())

    @classmethod
    def default(cls, extra: Optional[Mapping[str, str]] = None) -> "AliasTable":
        """Create the table for Indian met subdivisions, plus optional extras."""
        table = cls(DEFAULT_ALIASES)
        if extra:
            table.update(extra.items())
        return table

    def update(self, pairs: Iterable[Tuple[str, str]]) -> None:
        """Register (scheme A name, scheme B name) pairs; names are normalized."""
        collisions = 0
        for a_name, b_name in pairs:
            a_key = normalize_name(a_name)
            b_key = normalize_name(b_name)
            if not a_key or not b_key:
                continue
            if b_key in self._reverse and self._reverse[b_key] != a_key:
                collisions += 1
            self._forward[a_key] = b_key
            self._reverse[b_key] = a_key
        if collisions:
            logger.debug(f"Alias table: {collisions} reverse collisions (last wins)")

    def forward(self, key: str) -> str:
        """Scheme A key -> scheme B key, or the key itself when unmapped."""
        return self._forward.get(key, key)

    def reverse(self, key: str) -> str:
        """Scheme B key -> scheme A key, or the key itself when unmapped."""
        return self._reverse.get(key, key)

    def canonical(self, name: Optional[str]) -> str:
        """Normalize a display name from either scheme and map it to scheme B."""
        return self.forward(normalize_name(name))

    def __len__(self) -> int:
        return len(self._forward)

    def __contains__(self, key: str) -> bool:
        return key in self._forward

    def to_dict(self) -> Dict[str, str]:
        return dict(self._forward)
