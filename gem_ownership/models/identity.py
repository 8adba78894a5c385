from pydantic import BaseModel
from typing import Optional
from enum import Enum


class IdKind(str, Enum):
    GEM_ASSET = "gem_asset"  # G100000109409
    GEM_ENTITY = "gem_entity"  # E100001000348
    COMPOSITE = "composite"  # E100000000834_G100000109409 (legacy URLs)
    DERIVED = "derived"  # BlackRock_Inc_7k2m
    UNKNOWN = "unknown"


class IdReference(BaseModel):
    """An identifier as it arrived, tagged with what kind of id it is."""

    raw: str
    kind: IdKind
    entity_id: Optional[str] = None
    asset_id: Optional[str] = None

    @property
    def primary_id(self) -> str:
        """The id a lookup should use: the asset half of a composite, else raw."""
        if self.kind == IdKind.COMPOSITE and self.asset_id:
            return self.asset_id
        return self.raw
