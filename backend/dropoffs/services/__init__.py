"""Services subpackage — proximity search against the PostGIS store."""

from dropoffs.services.proximity import (
    DropoffQueryService,
    adapt_feature_collection,
    build_proximity_statement,
    get_query_service,
)

__all__ = [
    "DropoffQueryService",
    "adapt_feature_collection",
    "build_proximity_statement",
    "get_query_service",
]
