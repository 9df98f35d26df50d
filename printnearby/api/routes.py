# printnearby/api/routes.py
# Nearby ZIP / printer search endpoints. Search errors are rendered by the
# exception handlers registered in printnearby.main.

from fastapi import APIRouter, Request, Query

# Local imports
from printnearby.models.dto import (
    CoordinateSearchRequest,
    ZipSearchRequest,
    NearbyZipsResponse,
    NearbyPrintersResponse,
    ZipDistanceResponse,
    ErrorResponse,
)
from printnearby.services.nearby_search import NearbySearchService

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}

def get_search_service(request: Request) -> NearbySearchService:
    return request.app.state.search_service

# ----------------------------------------------------------------------
# Nearby ZIP codes
# ----------------------------------------------------------------------
@router.post("/nearby-zips/coords", response_model=NearbyZipsResponse, responses=ERROR_RESPONSES)
async def nearby_zips_by_coords(request: Request, data: CoordinateSearchRequest):
    """ZIP codes within `radius` miles of a coordinate, nearest first."""
    service = get_search_service(request)
    zips = service.find_nearby_zips_by_coords(data.lat, data.lon, data.radius)
    return NearbyZipsResponse(zips=zips)

@router.post("/nearby-zips/zip", response_model=NearbyZipsResponse, responses=ERROR_RESPONSES)
async def nearby_zips_by_zip(request: Request, data: ZipSearchRequest):
    """ZIP codes within `radius` miles of another ZIP code's centroid."""
    service = get_search_service(request)
    zips = service.find_nearby_zips_by_zip(data.zip, data.radius)
    return NearbyZipsResponse(zips=zips)

# ----------------------------------------------------------------------
# Nearby printers
# ----------------------------------------------------------------------
@router.post("/nearby-printers/coords", response_model=NearbyPrintersResponse, responses=ERROR_RESPONSES)
async def nearby_printers_by_coords(request: Request, data: CoordinateSearchRequest):
    """Printer listings near a coordinate, sorted by ascending distance."""
    service = get_search_service(request)
    printers = await service.find_nearby_providers_by_coords(data.lat, data.lon, data.radius)
    return NearbyPrintersResponse(printers=printers)

@router.post("/nearby-printers/zip", response_model=NearbyPrintersResponse, responses=ERROR_RESPONSES)
async def nearby_printers_by_zip(request: Request, data: ZipSearchRequest):
    """Printer listings near a ZIP code, sorted by ascending distance."""
    service = get_search_service(request)
    printers = await service.find_nearby_providers_by_zip(data.zip, data.radius)
    return NearbyPrintersResponse(printers=printers)

# ----------------------------------------------------------------------
# ZIP to ZIP distance
# ----------------------------------------------------------------------
@router.get("/distance", response_model=ZipDistanceResponse, responses=ERROR_RESPONSES)
async def zip_distance(
    request: Request,
    origin: str = Query(..., description="Origin ZIP code"),
    destination: str = Query(..., description="Destination ZIP code"),
):
    """Straight-line miles between two ZIP centroids with a rough drive time."""
    service = get_search_service(request)
    result = service.distance_between_zips(origin, destination)
    return ZipDistanceResponse(distance=result.distance, duration=result.duration)
