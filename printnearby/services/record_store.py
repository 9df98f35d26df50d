# printnearby/services/record_store.py
"""Printer record store collaborators.

The search service only needs one query shape: "all printers whose `zip`
is in this list". Firestore rejects `IN` filters with more than
MAX_IN_FILTER_VALUES values, so callers must chunk; both stores here enforce
the same cap.
"""
import json
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

import httpx
import structlog

from printnearby.core.exceptions import DependencyFailureError

logger = structlog.get_logger(__name__)

# Hard limit of the datastore's membership filter, not a tuning knob
MAX_IN_FILTER_VALUES = 10

FIRESTORE_API_URL = "https://firestore.googleapis.com"


class PrinterStore(Protocol):
    """Read-only access to printer listings keyed by ZIP code."""
    async def find_by_zips(self, zips: Sequence[str]) -> List[Dict[str, Any]]: ...


def _check_filter_size(zips: Sequence[str]) -> None:
    if len(zips) > MAX_IN_FILTER_VALUES:
        raise DependencyFailureError(
            f"IN filter supports at most {MAX_IN_FILTER_VALUES} values, got {len(zips)}"
        )


class InMemoryPrinterStore:
    """
    Printer listings held in process memory, for local development and tests.
    Results come back in insertion order.
    """

    def __init__(self, printers: Iterable[Dict[str, Any]] = ()):
        self._printers: List[Dict[str, Any]] = [dict(p) for p in printers]

    @classmethod
    def from_json_file(cls, path: str) -> "InMemoryPrinterStore":
        """Seed the store from a JSON array of printer documents (each with an `id`)."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"Printer seed file {path} must contain a JSON array")
        return cls(data)

    def __len__(self) -> int:
        return len(self._printers)

    async def find_by_zips(self, zips: Sequence[str]) -> List[Dict[str, Any]]:
        _check_filter_size(zips)
        wanted = set(zips)
        return [dict(p) for p in self._printers if p.get("zip") in wanted]


def decode_firestore_value(value: Dict[str, Any]) -> Any:
    """Convert one Firestore REST typed value into a plain Python value."""
    if "stringValue" in value:
        return value["stringValue"]
    if "integerValue" in value:
        # int64 values are sent as strings
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "nullValue" in value:
        return None
    if "timestampValue" in value:
        return value["timestampValue"]
    if "referenceValue" in value:
        return value["referenceValue"]
    if "bytesValue" in value:
        return value["bytesValue"]
    if "geoPointValue" in value:
        point = value["geoPointValue"]
        return {"lat": point.get("latitude", 0.0), "lon": point.get("longitude", 0.0)}
    if "arrayValue" in value:
        return [decode_firestore_value(v) for v in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        return decode_firestore_fields(value["mapValue"].get("fields", {}))
    raise ValueError(f"Unsupported Firestore value: {sorted(value)}")


def decode_firestore_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {name: decode_firestore_value(v) for name, v in fields.items()}


class FirestorePrinterStore:
    """Printer listings read through the Firestore REST `runQuery` endpoint."""

    def __init__(
        self,
        project_id: str,
        collection: str = "printers",
        database: str = "(default)",
        access_token: Optional[str] = None,
        emulator_host: Optional[str] = None,
        timeout: float = 8.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not project_id:
            raise ValueError("FIRESTORE_PROJECT_ID is not set in the environment")
        self.collection = collection
        base_url = f"http://{emulator_host}" if emulator_host else FIRESTORE_API_URL
        self._run_query_url = (
            f"{base_url}/v1/projects/{project_id}/databases/{database}/documents:runQuery"
        )
        self._headers = {"Authorization": f"Bearer {access_token}"} if access_token else {}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def build_query(self, zips: Sequence[str]) -> Dict[str, Any]:
        return {
            "structuredQuery": {
                "from": [{"collectionId": self.collection}],
                "where": {
                    "fieldFilter": {
                        "field": {"fieldPath": "zip"},
                        "op": "IN",
                        "value": {
                            "arrayValue": {
                                "values": [{"stringValue": z} for z in zips]
                            }
                        },
                    }
                },
            }
        }

    async def find_by_zips(self, zips: Sequence[str]) -> List[Dict[str, Any]]:
        _check_filter_size(zips)
        try:
            response = await self._client.post(
                self._run_query_url, json=self.build_query(zips), headers=self._headers
            )
            response.raise_for_status()
            rows = response.json()
        except httpx.TimeoutException as e:
            logger.error("printer_store_timeout", zips=list(zips))
            raise DependencyFailureError("Firestore query timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error("printer_store_query_failed", status_code=e.response.status_code)
            raise DependencyFailureError(
                f"Firestore query failed with status {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error("printer_store_unreachable", error=str(e))
            raise DependencyFailureError(f"Firestore unreachable: {e}") from e
        except ValueError as e:
            raise DependencyFailureError("Firestore returned a malformed response") from e

        printers: List[Dict[str, Any]] = []
        for row in rows:
            # runQuery also streams progress rows that carry no document
            document = row.get("document")
            if not document:
                continue
            printer = decode_firestore_fields(document.get("fields", {}))
            printer["id"] = document["name"].rsplit("/", 1)[-1]
            printers.append(printer)
        return printers

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
