"""
Ownership path parsing.

GEM stores the chain from ultimate parent to asset as a single string:

    "Vanguard Group [5%] -> BlackRock Inc [10%] -> RWE AG [100%] -> Asset [100%]"

These helpers turn it into Segments (name + percentage) and flat chains.
Parsing never fails: malformed input degrades to name-only segments and
callers decide what to skip.
"""

import re
from typing import Iterable, List, Optional

from gem_ownership.models import ChainItem, OwnershipRecord, Segment
from gem_ownership.services.identity import IdentityResolver

PATH_DELIMITER = " -> "
UNKNOWN_SHARE = "unknown %"

_SEGMENT_RE = re.compile(r"^(.+?)\s*\[([^\]]+)\]$")
_LEADING_FLOAT_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def _parse_percentage(text: str) -> Optional[float]:
    """Parse the leading number of a bracket body ("5.07%" -> 5.07)."""
    if text == UNKNOWN_SHARE:
        return None
    match = _LEADING_FLOAT_RE.match(text)
    if not match:
        return None
    return float(match.group(0))


def parse_segment(seg: str) -> Segment:
    """
    Parse a single segment of an ownership path.

    parse_segment("BlackRock Inc [5.07%]")  -> Segment(name="BlackRock Inc", percentage=5.07)
    parse_segment("X [unknown %]")          -> Segment(name="X", percentage=None)
    parse_segment("Y")                      -> Segment(name="Y", percentage=None)
    """
    seg = seg.strip()
    match = _SEGMENT_RE.match(seg)
    if match:
        return Segment(name=match.group(1).strip(), percentage=_parse_percentage(match.group(2).strip()))
    return Segment(name=seg, percentage=None)


def parse_path(path: str) -> List[Segment]:
    """Split a path on " -> " and parse each segment, ultimate parent first."""
    return [parse_segment(part) for part in path.split(PATH_DELIMITER)]


def _paths(records: Iterable[OwnershipRecord]) -> Iterable[List[Segment]]:
    for record in records:
        if record.ownership_path:
            yield parse_path(record.ownership_path)


def extract_ownership_chain(records: Iterable[OwnershipRecord]) -> List[Segment]:
    """
    Return the longest ownership path across records.

    Useful for a linear "A -> B -> Asset" display when an asset has several owners.
    Ties keep the first path seen.
    """
    longest: List[Segment] = []
    for segments in _paths(records):
        if len(segments) > len(longest):
            longest = segments
    return longest


def extract_chain_with_ids(
    records: Iterable[OwnershipRecord],
    resolver: Optional[IdentityResolver] = None,
    target_asset_id: Optional[str] = None,
    target_asset_name: Optional[str] = None,
) -> List[ChainItem]:
    """
    Collect every distinct entity across all paths with an id and depth.

    Depth counts from the asset (0) upwards. Items are deduplicated by id,
    first occurrence wins, and returned ultimate parent first.
    """
    resolver = resolver or IdentityResolver()

    seen = set()
    chain: List[ChainItem] = []
    for segments in _paths(records):
        for i, seg in enumerate(segments):
            if target_asset_id and seg.name == target_asset_name:
                node_id = target_asset_id
            else:
                node_id = resolver.derive(seg.name)
            if node_id in seen:
                continue
            seen.add(node_id)
            chain.append(ChainItem(id=node_id, name=seg.name, share=seg.percentage, depth=len(segments) - 1 - i))

    chain.sort(key=lambda item: item.depth, reverse=True)
    return chain
