from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from gem_ownership.models import Direction, IdReference, TraversalResult
from gem_ownership.dependencies import ApiKeyDep, ResolverDep, TraversalDep

router = APIRouter()


@router.get("/graph", response_model=TraversalResult)
def get_ownership_graph(
    traversal: TraversalDep,
    resolver: ResolverDep,
    api_key: ApiKeyDep,
    root: str = Query(..., min_length=1),
    direction: str = Query("up"),
    max_depth: Optional[int] = Query(None, ge=1, le=50),
):
    """
    Unified graph endpoint: walk up or down from any id.

    Composite E..._G... ids are reduced to their asset half. An unknown id
    gives a graph holding only the root node, not a 404.
    """
    try:
        walk = Direction(direction.lower())
    except ValueError:
        raise HTTPException(status_code=422, detail=f"direction must be 'up' or 'down', got {direction!r}")

    if max_depth is not None:
        traversal.max_depth = max_depth

    root_id = resolver.parse_reference(root).primary_id
    if walk == Direction.UP:
        return traversal.traverse_up(root_id)
    return traversal.traverse_down(root_id)


@router.get("/ids/{value}", response_model=IdReference)
async def classify_id(value: str, resolver: ResolverDep, api_key: ApiKeyDep):
    """What kind of identifier is this?"""
    return resolver.parse_reference(value)
