# printnearby/services/nearby_search.py
# Radius search over the ZIP gazetteer and the printers located in matching ZIPs.

import asyncio
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

import structlog

from printnearby.core.exceptions import (
    DependencyFailureError,
    InvalidArgumentError,
    ZipNotFoundError,
)
from printnearby.services.gazetteer import Gazetteer
from printnearby.services.record_store import MAX_IN_FILTER_VALUES, PrinterStore
from printnearby.utils.haversine import haversine_miles, miles_to_km

logger = structlog.get_logger(__name__)

_ZIP_RE = re.compile(r"^\d{5}$")


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lon: float


@dataclass(frozen=True)
class ZipOrigin:
    zip: str


QueryLocation = Union[Coordinates, ZipOrigin]


@dataclass(frozen=True)
class ZipDistance:
    distance: float  # miles
    duration: str


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_radius(radius_miles: Any) -> float:
    if not _is_number(radius_miles) or not math.isfinite(radius_miles):
        raise InvalidArgumentError(f"Radius must be a finite number, got {radius_miles!r}")
    if radius_miles < 0:
        raise InvalidArgumentError(f"Radius must not be negative, got {radius_miles!r}")
    return float(radius_miles)


def validate_zip(zip_code: Any) -> str:
    if not isinstance(zip_code, str) or not _ZIP_RE.match(zip_code):
        raise InvalidArgumentError(f"Invalid ZIP code format: {zip_code!r}")
    return zip_code


def format_duration(hours: float) -> str:
    """Render a drive time the way the listing pages show it, e.g. '1 hour 5 min'."""
    whole_hours = math.floor(hours)
    minutes = round((hours - whole_hours) * 60)
    if minutes == 60:
        whole_hours += 1
        minutes = 0
    if whole_hours > 0:
        plural = "s" if whole_hours > 1 else ""
        return f"{whole_hours} hour{plural} {minutes} min"
    return f"{minutes} min"


def chunked(items: Sequence[str], size: int) -> List[List[str]]:
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class NearbySearchService:
    """Finds ZIP codes and printer listings within a radius of an origin.

    The gazetteer is built once at startup and shared read-only; every call
    keeps its working state on its own stack, so concurrent calls are safe.
    """

    def __init__(
        self,
        gazetteer: Gazetteer,
        printer_store: Optional[PrinterStore] = None,
        average_speed_mph: float = 45.0,
    ):
        self.gazetteer = gazetteer
        self.printer_store = printer_store
        self.average_speed_mph = average_speed_mph

    def resolve_origin(self, origin: QueryLocation) -> Coordinates:
        """Turn a QueryLocation into validated coordinates."""
        if isinstance(origin, ZipOrigin):
            record = self.gazetteer.lookup(validate_zip(origin.zip))
            if record is None:
                raise ZipNotFoundError(origin.zip)
            return Coordinates(lat=record.lat, lon=record.lon)

        if isinstance(origin, Coordinates):
            lat, lon = origin.lat, origin.lon
            if not (_is_number(lat) and _is_number(lon)) or not (math.isfinite(lat) and math.isfinite(lon)):
                raise InvalidArgumentError(f"Coordinates must be finite numbers, got ({lat!r}, {lon!r})")
            if not (-90 <= lat <= 90 and -180 <= lon <= 180):
                raise InvalidArgumentError(f"Coordinates out of range: ({lat}, {lon})")
            return Coordinates(lat=float(lat), lon=float(lon))

        raise InvalidArgumentError(f"Unsupported origin type: {type(origin).__name__}")

    def find_nearby_zips(self, origin: QueryLocation, radius_miles: Any) -> List[str]:
        """ZIP codes whose centroid lies within radius_miles of origin, nearest first."""
        radius = validate_radius(radius_miles)
        point = self.resolve_origin(origin)
        return self._zips_within(point, radius)

    def find_nearby_zips_by_coords(self, lat: Any, lon: Any, radius_miles: Any) -> List[str]:
        return self.find_nearby_zips(Coordinates(lat=lat, lon=lon), radius_miles)

    def find_nearby_zips_by_zip(self, zip_code: Any, radius_miles: Any) -> List[str]:
        return self.find_nearby_zips(ZipOrigin(zip=zip_code), radius_miles)

    def _zips_within(self, point: Coordinates, radius: float) -> List[str]:
        # The index bound is generous; the haversine pass below is authoritative
        positions = self.gazetteer.index.nearest_within(
            point.lon, point.lat, None, miles_to_km(radius)
        )

        nearby: Dict[str, None] = {}
        for position in positions:
            record = self.gazetteer.record_at(position)
            if record is None:
                continue
            distance = haversine_miles(point.lat, point.lon, record.lat, record.lon)
            if distance <= radius:
                nearby.setdefault(record.zip, None)
        return list(nearby)

    async def find_nearby_providers(self, origin: QueryLocation, radius_miles: Any) -> List[Dict[str, Any]]:
        """Printer listings located in ZIPs within the radius, sorted by distance.

        Each returned dict is a copy of the stored listing plus a `distance`
        in miles. Store failures raise DependencyFailureError.
        """
        radius = validate_radius(radius_miles)
        point = self.resolve_origin(origin)
        zips = self._zips_within(point, radius)
        if not zips:
            return []
        if self.printer_store is None:
            raise DependencyFailureError("No printer store configured")

        chunks = chunked(zips, MAX_IN_FILTER_VALUES)
        try:
            # The first failing chunk cancels the queries still in flight
            async with asyncio.TaskGroup() as group:
                tasks = [
                    group.create_task(self.printer_store.find_by_zips(chunk))
                    for chunk in chunks
                ]
        except ExceptionGroup as eg:
            error = eg.exceptions[0]
            if isinstance(error, DependencyFailureError):
                raise error from None
            logger.error("printer_store_query_failed", error=str(error), chunks=len(chunks))
            raise DependencyFailureError(f"Printer store query failed: {error}") from error

        printers: List[Dict[str, Any]] = []
        # Tasks are read back in chunk order, so the merge is deterministic
        for batch in (task.result() for task in tasks):
            for printer in batch:
                zip_code = printer.get("zip")
                record = self.gazetteer.lookup(zip_code) if isinstance(zip_code, str) else None
                if record is None:
                    logger.warning("printer_zip_unknown", printer_id=printer.get("id"), zip=zip_code)
                    continue
                distance = haversine_miles(point.lat, point.lon, record.lat, record.lon)
                printers.append({**printer, "distance": distance})

        logger.info("nearby_printers_found", zips=len(zips), chunks=len(chunks), printers=len(printers))
        # sorted() is stable: equal distances keep store order
        return sorted(printers, key=lambda p: p["distance"])

    async def find_nearby_providers_by_coords(self, lat: Any, lon: Any, radius_miles: Any) -> List[Dict[str, Any]]:
        return await self.find_nearby_providers(Coordinates(lat=lat, lon=lon), radius_miles)

    async def find_nearby_providers_by_zip(self, zip_code: Any, radius_miles: Any) -> List[Dict[str, Any]]:
        return await self.find_nearby_providers(ZipOrigin(zip=zip_code), radius_miles)

    def distance_between_zips(self, origin_zip: Any, destination_zip: Any) -> ZipDistance:
        """Great-circle miles between two ZIP centroids plus a drive-time estimate."""
        origin = self.resolve_origin(ZipOrigin(zip=origin_zip))
        destination = self.resolve_origin(ZipOrigin(zip=destination_zip))
        distance = haversine_miles(origin.lat, origin.lon, destination.lat, destination.lon)
        return ZipDistance(
            distance=distance,
            duration=format_duration(distance / self.average_speed_mph),
        )
