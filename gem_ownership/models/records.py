from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional
from enum import Enum


class NodeKind(str, Enum):
    ENTITY = "entity"
    ASSET = "asset"


class OwnershipRecord(BaseModel):
    """One row of the ownership relation: owner holds a share of subject."""

    model_config = ConfigDict(frozen=True)

    subject_id: str
    subject_name: str = ""
    owner_id: Optional[str] = None
    owner_name: str = ""
    share_pct: Optional[float] = Field(None, ge=0)
    ownership_path: Optional[str] = None
    subject_kind: Optional[NodeKind] = None

    # Classification of the subject
    status: Optional[str] = None
    category: Optional[str] = None  # tracker, e.g. "Coal Plant"
    country: Optional[str] = None
    capacity_mw: Optional[float] = None

    imputed: bool = False
    extra: dict[str, Any] = Field(default_factory=dict)
