"""Shared test fixtures: small ZIP gazetteers and printer listings."""

import gzip
import json
from pathlib import Path

import pytest

from printnearby.models.dto import ZipRecord
from printnearby.services.gazetteer import Gazetteer
from printnearby.services.nearby_search import NearbySearchService
from printnearby.services.record_store import InMemoryPrinterStore

# Census ZCTA centroids around Manhattan plus a few far-away ZIPs
NYC_ZIPS = [
    {"zip": "10001", "lat": 40.750636, "lon": -73.997177},
    {"zip": "10018", "lat": 40.755319, "lon": -73.993114},
    {"zip": "10011", "lat": 40.740225, "lon": -74.000528},
    {"zip": "10036", "lat": 40.759254, "lon": -73.989827},
    {"zip": "10003", "lat": 40.731829, "lon": -73.989181},
    {"zip": "10002", "lat": 40.715914, "lon": -73.986012},
    {"zip": "07030", "lat": 40.745170, "lon": -74.027979},
    # No coordinates: kept in the record list, never indexed
    {"zip": "99999", "lat": None, "lon": None},
    {"zip": "11201", "lat": 40.693763, "lon": -73.989930},
    {"zip": "10451", "lat": 40.820479, "lon": -73.923398},
    {"zip": "10301", "lat": 40.631000, "lon": -74.093000},
    {"zip": "19104", "lat": 39.961000, "lon": -75.199000},
    {"zip": "90210", "lat": 34.103000, "lon": -118.410500},
]

PRINTERS = [
    {"id": "p-chelsea", "zip": "10001", "name": "Chelsea Prints", "printerType": "FDM"},
    {"id": "p-hoboken", "zip": "07030", "name": "Hoboken Layer Works", "printerType": "SLA"},
    {"id": "p-brooklyn", "zip": "11201", "name": "DUMBO Fab", "printerType": "FDM"},
    {"id": "p-bronx", "zip": "10451", "name": "Bronx Maker Space", "printerType": "FDM"},
    {"id": "p-chelsea-2", "zip": "10001", "name": "Chelsea Resin", "printerType": "SLA"},
    {"id": "p-lost", "zip": "12345", "name": "Unknown ZIP Printers", "printerType": "FDM"},
    {"id": "p-beverly", "zip": "90210", "name": "Hills Prototyping", "printerType": "SLS"},
]


def grid_zips(count: int = 25):
    """A line of synthetic ZIPs about 0.7 miles apart near Washington, DC."""
    return [
        {"zip": f"{20001 + i:05d}", "lat": 38.90 + i * 0.01, "lon": -77.03}
        for i in range(count)
    ]


def write_dataset(path: Path, rows) -> Path:
    with gzip.open(path, "wt", encoding="utf-8") as f:
        json.dump(rows, f)
    return path


@pytest.fixture()
def zip_dataset(tmp_path: Path) -> Path:
    return write_dataset(tmp_path / "zipcodes.json.gz", NYC_ZIPS)


@pytest.fixture()
def printer_seed(tmp_path: Path) -> Path:
    path = tmp_path / "printers.json"
    path.write_text(json.dumps(PRINTERS), encoding="utf-8")
    return path


@pytest.fixture()
def gazetteer() -> Gazetteer:
    return Gazetteer.from_records([ZipRecord(**row) for row in NYC_ZIPS])


@pytest.fixture()
def printer_store() -> InMemoryPrinterStore:
    return InMemoryPrinterStore(PRINTERS)


@pytest.fixture()
def service(gazetteer: Gazetteer, printer_store: InMemoryPrinterStore) -> NearbySearchService:
    return NearbySearchService(gazetteer, printer_store)
