# printnearby/services/gazetteer.py
# ZIP code gazetteer: the compressed centroid dataset plus a static k-d tree
# built over it once at startup and shared read-only afterwards.

import gzip
import json
import math
import zlib
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import structlog
from pydantic import ValidationError
from sklearn.neighbors import KDTree

from printnearby.core.exceptions import FatalStartupError
from printnearby.models.dto import ZipDataset, ZipRecord

logger = structlog.get_logger(__name__)

# Mean Earth radius used to turn a km bound into an angle. Slightly smaller
# than 3959 mi, so the bound it yields is never tighter than the mile filter.
EARTH_RADIUS_KM = 6371.0088

# Relative slack on the chord bound so float rounding never drops a boundary point
_CHORD_SLACK = 1e-9


def _to_unit_vector(lon: float, lat: float) -> Tuple[float, float, float]:
    """Project a lon/lat pair onto the unit sphere."""
    lon_r = math.radians(lon)
    lat_r = math.radians(lat)
    cos_lat = math.cos(lat_r)
    return (cos_lat * math.cos(lon_r), cos_lat * math.sin(lon_r), math.sin(lat_r))


def _chord_for_km(distance_km: float) -> float:
    """Straight-line (chord) length on the unit sphere for a surface distance."""
    angle = min(distance_km / EARTH_RADIUS_KM, math.pi)
    return 2.0 * math.sin(angle / 2.0) * (1.0 + _CHORD_SLACK) + _CHORD_SLACK


class GazetteerIndex:
    """Finished, immutable spatial index over ZIP centroids.

    Points live on the unit sphere, so euclidean chord distance in the tree
    orders candidates exactly like great-circle distance does. Instances are
    only produced by GazetteerIndexBuilder.finish().
    """

    def __init__(self, tree: Optional[KDTree], positions: np.ndarray):
        self._tree = tree
        self._positions = positions

    def __len__(self) -> int:
        return len(self._positions)

    def nearest_within(
        self,
        origin_lon: float,
        origin_lat: float,
        max_count: Optional[int],
        upper_bound_km: float,
    ) -> List[int]:
        """Return record positions nearest first, none beyond upper_bound_km.

        At most max_count positions are returned; None means no limit and a
        count of zero or less means none.
        """
        if self._tree is None or upper_bound_km < 0 or (max_count is not None and max_count <= 0):
            return []

        query = np.array([_to_unit_vector(origin_lon, origin_lat)])
        ind, _dist = self._tree.query_radius(
            query,
            r=_chord_for_km(upper_bound_km),
            return_distance=True,
            sort_results=True,
        )
        rows = ind[0]
        if max_count is not None:
            rows = rows[:max_count]
        return [int(p) for p in self._positions[rows]]


class GazetteerIndexBuilder:
    """Collects points, then builds the tree exactly once."""

    def __init__(self, leaf_size: int = 40):
        self._leaf_size = leaf_size
        self._points: List[Tuple[float, float, float]] = []
        self._positions: List[int] = []
        self._finished = False

    def add(self, position: int, lon: float, lat: float) -> None:
        if self._finished:
            raise RuntimeError("index already finished; no further points can be added")
        self._points.append(_to_unit_vector(lon, lat))
        self._positions.append(position)

    def finish(self) -> GazetteerIndex:
        if self._finished:
            raise RuntimeError("index already finished")
        self._finished = True

        positions = np.asarray(self._positions, dtype=np.int64)
        if not self._points:
            return GazetteerIndex(None, positions)
        tree = KDTree(np.asarray(self._points, dtype=np.float64), leaf_size=self._leaf_size)
        return GazetteerIndex(tree, positions)


def build_index(coordinates: Sequence[Optional[Tuple[float, float]]]) -> GazetteerIndex:
    """Build an index from (lon, lat) pairs; position i maps to coordinates[i].

    Missing or non-finite entries are skipped and get no index entry.
    """
    builder = GazetteerIndexBuilder()
    for position, pair in enumerate(coordinates):
        if pair is None:
            continue
        lon, lat = pair
        if lon is None or lat is None or not (math.isfinite(lon) and math.isfinite(lat)):
            continue
        builder.add(position, lon, lat)
    return builder.finish()


def load_zip_records(path: str) -> List[ZipRecord]:
    """Decompress, parse and validate the ZIP dataset.

    Any failure raises FatalStartupError; there is no empty fallback.
    """
    try:
        with gzip.open(path, "rt", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise FatalStartupError(path, "file not found")
    except (OSError, EOFError, zlib.error) as e:
        raise FatalStartupError(path, f"decompression failed ({e})") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise FatalStartupError(path, f"invalid JSON ({e})") from e

    try:
        records = ZipDataset.model_validate(data).root
    except ValidationError as e:
        raise FatalStartupError(path, f"schema validation failed ({e.error_count()} errors)") from e

    if not any(r.has_coordinates for r in records):
        raise FatalStartupError(path, "dataset has no records with usable coordinates")
    return records


class Gazetteer:
    """ZIP records, their spatial index and a ZIP lookup table."""

    def __init__(self, records: Sequence[ZipRecord], index: GazetteerIndex):
        self.records: Tuple[ZipRecord, ...] = tuple(records)
        self.index = index
        self._by_zip: Dict[str, ZipRecord] = {}
        for record in self.records:
            # First locatable occurrence wins for duplicated ZIPs
            if record.has_coordinates:
                self._by_zip.setdefault(record.zip, record)

    @classmethod
    def from_records(cls, records: Sequence[ZipRecord]) -> "Gazetteer":
        coordinates = [
            (r.lon, r.lat) if r.has_coordinates else None
            for r in records
        ]
        index = build_index(coordinates)
        logger.info("index_built", indexed=len(index), skipped=len(records) - len(index))
        return cls(records, index)

    @classmethod
    def load(cls, path: str) -> "Gazetteer":
        records = load_zip_records(path)
        logger.info("gazetteer_loaded", path=path, zip_codes=len(records))
        return cls.from_records(records)

    def __len__(self) -> int:
        return len(self.records)

    def record_at(self, position: int) -> Optional[ZipRecord]:
        if 0 <= position < len(self.records):
            return self.records[position]
        return None

    def lookup(self, zip_code: str) -> Optional[ZipRecord]:
        """Return the record for zip_code, or None when it is unknown or has no coordinates."""
        return self._by_zip.get(zip_code)
