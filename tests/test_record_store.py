"""Tests for printnearby.services.record_store."""

import asyncio
import json
from pathlib import Path

import httpx
import pytest

from printnearby.core.exceptions import DependencyFailureError
from printnearby.services.record_store import (
    MAX_IN_FILTER_VALUES,
    FirestorePrinterStore,
    InMemoryPrinterStore,
    decode_firestore_fields,
)

from conftest import PRINTERS


def firestore_document(doc_id: str, zip_code: str, name: str) -> dict:
    return {
        "document": {
            "name": f"projects/demo/databases/(default)/documents/printers/{doc_id}",
            "fields": {
                "zip": {"stringValue": zip_code},
                "name": {"stringValue": name},
                "isActive": {"booleanValue": True},
                "hourlyRate": {"doubleValue": 12.5},
                "buildVolume": {"integerValue": "220"},
            },
        },
        "readTime": "2024-05-01T12:00:00Z",
    }


def make_store(handler, **kwargs) -> FirestorePrinterStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return FirestorePrinterStore(project_id="demo", client=client, **kwargs)


class TestInMemoryPrinterStore:
    def test_filters_by_zip_in_insertion_order(self):
        store = InMemoryPrinterStore(PRINTERS)
        result = asyncio.run(store.find_by_zips(["10001", "07030"]))
        assert [p["id"] for p in result] == ["p-chelsea", "p-hoboken", "p-chelsea-2"]

    def test_rejects_oversized_filter(self):
        store = InMemoryPrinterStore(PRINTERS)
        zips = [f"{10000 + i}" for i in range(MAX_IN_FILTER_VALUES + 1)]
        with pytest.raises(DependencyFailureError):
            asyncio.run(store.find_by_zips(zips))

    def test_returns_copies(self):
        store = InMemoryPrinterStore(PRINTERS)
        result = asyncio.run(store.find_by_zips(["10001"]))
        result[0]["name"] = "changed"
        again = asyncio.run(store.find_by_zips(["10001"]))
        assert again[0]["name"] == "Chelsea Prints"

    def test_from_json_file(self, printer_seed: Path):
        store = InMemoryPrinterStore.from_json_file(str(printer_seed))
        assert len(store) == len(PRINTERS)

    def test_from_json_file_requires_array(self, tmp_path: Path):
        path = tmp_path / "seed.json"
        path.write_text(json.dumps({"printers": []}))
        with pytest.raises(ValueError):
            InMemoryPrinterStore.from_json_file(str(path))


class TestFirestoreDecoding:
    def test_nested_values(self):
        fields = {
            "tags": {"arrayValue": {"values": [{"stringValue": "PLA"}, {"stringValue": "PETG"}]}},
            "owner": {"mapValue": {"fields": {"uid": {"stringValue": "u1"}, "rating": {"nullValue": None}}}},
            "createdAt": {"timestampValue": "2024-05-01T12:00:00Z"},
            "location": {"geoPointValue": {"latitude": 40.7, "longitude": -73.9}},
            "empty": {"arrayValue": {}},
        }
        assert decode_firestore_fields(fields) == {
            "tags": ["PLA", "PETG"],
            "owner": {"uid": "u1", "rating": None},
            "createdAt": "2024-05-01T12:00:00Z",
            "location": {"lat": 40.7, "lon": -73.9},
            "empty": [],
        }

    def test_unknown_value_type(self):
        with pytest.raises(ValueError):
            decode_firestore_fields({"x": {"mysteryValue": 1}})


class TestFirestorePrinterStore:
    def test_run_query(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=[
                firestore_document("abc", "10001", "Chelsea Prints"),
                {"readTime": "2024-05-01T12:00:00Z"},
                firestore_document("def", "07030", "Hoboken Layer Works"),
            ])

        store = make_store(handler, access_token="token-123")
        result = asyncio.run(store.find_by_zips(["10001", "07030"]))

        assert seen["url"].startswith("https://firestore.googleapis.com/v1/projects/demo/databases/")
        assert seen["url"].endswith("/documents:runQuery")
        assert seen["auth"] == "Bearer token-123"
        where = seen["body"]["structuredQuery"]["where"]["fieldFilter"]
        assert where["op"] == "IN"
        assert where["field"] == {"fieldPath": "zip"}
        assert where["value"]["arrayValue"]["values"] == [{"stringValue": "10001"}, {"stringValue": "07030"}]
        assert seen["body"]["structuredQuery"]["from"] == [{"collectionId": "printers"}]

        assert result == [
            {"id": "abc", "zip": "10001", "name": "Chelsea Prints", "isActive": True, "hourlyRate": 12.5, "buildVolume": 220},
            {"id": "def", "zip": "07030", "name": "Hoboken Layer Works", "isActive": True, "hourlyRate": 12.5, "buildVolume": 220},
        ]

    def test_emulator_host(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=[])

        store = make_store(handler, emulator_host="localhost:8080", collection="listings")
        assert asyncio.run(store.find_by_zips(["10001"])) == []
        assert seen["url"].startswith("http://localhost:8080/v1/projects/demo/")
        assert seen["auth"] is None

    def test_http_error_is_dependency_failure(self):
        store = make_store(lambda request: httpx.Response(403, json={"error": {"status": "PERMISSION_DENIED"}}))
        with pytest.raises(DependencyFailureError) as ctx:
            asyncio.run(store.find_by_zips(["10001"]))
        assert "403" in str(ctx.value)

    def test_timeout_is_dependency_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        store = make_store(handler)
        with pytest.raises(DependencyFailureError):
            asyncio.run(store.find_by_zips(["10001"]))

    def test_connection_error_is_dependency_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        store = make_store(handler)
        with pytest.raises(DependencyFailureError):
            asyncio.run(store.find_by_zips(["10001"]))

    def test_rejects_oversized_filter_without_request(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=[])

        store = make_store(handler)
        with pytest.raises(DependencyFailureError):
            asyncio.run(store.find_by_zips([str(10000 + i) for i in range(11)]))
        assert calls == []

    def test_requires_project_id(self):
        with pytest.raises(ValueError):
            FirestorePrinterStore(project_id="")
