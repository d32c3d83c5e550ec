"""
Drop-off Endpoints
==================
Nearest recycling drop-off points as GeoJSON.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response

from dropoffs.services.proximity import DropoffQueryService, get_query_service

router = APIRouter(prefix="/data", tags=["Drop-offs"])


@router.get("/dropoffs")
async def nearby_dropoffs(
    center_lat: str = Query(..., alias="centerLat"),
    center_lng: str = Query(..., alias="centerLng"),
    service: DropoffQueryService = Depends(get_query_service),
):
    """
    Return the drop-off points nearest to ``(centerLat, centerLng)``.

    At most ``CANDIDATE_LIMIT`` of the nearest rows are considered and only
    those inside ``SEARCH_RADIUS_MILES`` are returned.  The body is the
    store's GeoJSON document, passed through as-is.
    """
    document = await service.search(center_lat, center_lng)
    return Response(content=document, media_type="application/json")
