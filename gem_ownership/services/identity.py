"""
Identity resolution for ownership graph nodes.

Two id systems meet in the ownership data:

- GEM database ids: G-prefixed assets (G100000109409), E-prefixed entities
  (E100001000348), and legacy composites of the two (E..._G...).
- Derived ids for names that have no database key, which is most of the
  intermediate companies mentioned in ownership paths:
  "BlackRock Inc" -> "BlackRock_Inc_7k2m".

A derived id is the cleaned name plus a short hash of the *raw* name, so
"ABC Corp" and "ABC Corp." get different ids even though they clean to the
same prefix.
"""

import re
from typing import Dict, Optional, Tuple

from gem_ownership.models import IdKind, IdReference

DEFAULT_SUFFIX_LENGTH = 4
DEFAULT_MAX_LENGTH = 50

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_UNSAFE_RE = re.compile(r"[^A-Za-z0-9]")
_ASSET_RE = re.compile(r"^G\d+$")
_ENTITY_RE = re.compile(r"^E\d+$")
_COMPOSITE_RE = re.compile(r"^(E\d+)_(G\d+)$")


def _utf16_units(text: str):
    raw = text.encode("utf-16-le")
    for i in range(0, len(raw), 2):
        yield int.from_bytes(raw[i : i + 2], "little")


def djb2_hash(text: str) -> int:
    """djb2 (XOR variant) over UTF-16 code units, as an unsigned 32-bit int."""
    h = 5381
    for unit in _utf16_units(text):
        h = ((h * 33) & 0xFFFFFFFF) ^ unit
    return h


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def hash_suffix(text: str, length: int = DEFAULT_SUFFIX_LENGTH) -> str:
    return to_base36(djb2_hash(text))[-length:].rjust(length, "0")


def split_composite(value: str) -> Optional[Tuple[str, str]]:
    """'E100_G200' -> ('E100', 'G200'); None if not a composite id."""
    match = _COMPOSITE_RE.match(value)
    if not match:
        return None
    return match.group(1), match.group(2)


class IdentityResolver:
    """
    Maps names (and canonical keys when present) to stable node ids.

    Holds a small memo of derived ids, so create one per request or build
    run rather than sharing it globally.
    """

    def __init__(self, suffix_length: int = DEFAULT_SUFFIX_LENGTH, max_length: int = DEFAULT_MAX_LENGTH):
        if suffix_length < 1:
            raise ValueError("suffix_length must be positive")
        if max_length <= suffix_length + 1:
            raise ValueError("max_length must leave room for the name prefix")
        self.suffix_length = suffix_length
        self.max_length = max_length
        self._derived_re = re.compile(rf"^[A-Za-z0-9_]*_[a-z0-9]{{{suffix_length}}}$")
        self._cache: Dict[str, str] = {}

    def derive(self, name: str) -> str:
        """Derive an id from a display name: {cleaned_name}_{hash}."""
        cached = self._cache.get(name)
        if cached is not None:
            return cached
        cleaned = _UNSAFE_RE.sub("_", name)
        truncated = cleaned[: self.max_length - self.suffix_length - 1]
        derived = f"{truncated}_{hash_suffix(name, self.suffix_length)}"
        self._cache[name] = derived
        return derived

    def resolve(self, name: Optional[str], canonical_id: Optional[str] = None) -> Optional[str]:
        """
        Return the canonical id when one is supplied, else a derived id.

        Returns None when there is neither an id nor a usable name.
        """
        if canonical_id is not None and str(canonical_id).strip():
            return str(canonical_id).strip()
        if name is None or not name.strip():
            return None
        return self.derive(name.strip())

    def classify(self, value: str) -> IdKind:
        if _ASSET_RE.match(value):
            return IdKind.GEM_ASSET
        if _ENTITY_RE.match(value):
            return IdKind.GEM_ENTITY
        if _COMPOSITE_RE.match(value):
            return IdKind.COMPOSITE
        if self._derived_re.match(value):
            return IdKind.DERIVED
        return IdKind.UNKNOWN

    def parse_reference(self, value: str) -> IdReference:
        kind = self.classify(value)
        if kind == IdKind.COMPOSITE:
            entity_id, asset_id = split_composite(value)
            return IdReference(raw=value, kind=kind, entity_id=entity_id, asset_id=asset_id)
        if kind == IdKind.GEM_ASSET:
            return IdReference(raw=value, kind=kind, asset_id=value)
        if kind == IdKind.GEM_ENTITY:
            return IdReference(raw=value, kind=kind, entity_id=value)
        return IdReference(raw=value, kind=kind)

    def normalize_asset_id(self, value: str) -> Optional[str]:
        """G-id as-is, asset half of a composite, otherwise None."""
        return self.parse_reference(value).asset_id

    def normalize_entity_id(self, value: str) -> Optional[str]:
        """E-id as-is, entity half of a composite, otherwise None."""
        return self.parse_reference(value).entity_id
