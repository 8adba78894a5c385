from typing import Annotated
from fastapi import Depends, Header

from gem_ownership.config import Settings, get_settings
from gem_ownership.db.queries.ownership_queries import Neo4jOwnershipRelation
from gem_ownership.services.identity import IdentityResolver
from gem_ownership.services.relation import OwnershipRelation, RelationCache
from gem_ownership.services.traversal import OwnershipTraversal


SettingsDep = Annotated[Settings, Depends(get_settings)]


async def verify_api_key(x_api_key: str = Header(None)) -> str:
    """
    Hook for a key already validated upstream (API gateway). Requests without
    a key run as "dev".
    """
    if x_api_key is None:
        return "dev"
    return x_api_key


ApiKeyDep = Annotated[str, Depends(verify_api_key)]


def get_relation() -> OwnershipRelation:
    """Overridden in tests with an in-memory relation."""
    return Neo4jOwnershipRelation()


RelationDep = Annotated[OwnershipRelation, Depends(get_relation)]


def get_resolver(settings: SettingsDep) -> IdentityResolver:
    """Fresh resolver per request."""
    return IdentityResolver(suffix_length=settings.id_suffix_length, max_length=settings.id_max_length)


ResolverDep = Annotated[IdentityResolver, Depends(get_resolver)]


def get_traversal(relation: RelationDep, resolver: ResolverDep, settings: SettingsDep) -> OwnershipTraversal:
    """Traversal with a request-scoped row cache."""
    return OwnershipTraversal(
        relation,
        resolver=resolver,
        max_depth=settings.traversal_max_depth,
        batch_size=settings.traversal_batch_size,
        max_workers=settings.traversal_max_workers,
        cache=RelationCache(),
    )


TraversalDep = Annotated[OwnershipTraversal, Depends(get_traversal)]
