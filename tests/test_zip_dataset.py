"""Tests for printnearby.services.zip_dataset."""

from pathlib import Path

from printnearby.models.dto import ZipRecord
from printnearby.services.gazetteer import load_zip_records
from printnearby.services.zip_dataset import parse_gazetteer_lines, write_dataset

HEADER = "GEOID\tALAND\tAWATER\tALAND_SQMI\tAWATER_SQMI\tINTPTLAT\tINTPTLONG\n"


class TestParseGazetteerLines:
    def test_parses_rows(self):
        lines = [
            HEADER,
            "10001\t1651326\t0\t0.638\t0.000\t40.750636\t-73.997177\n",
            "07030\t3210432\t575456\t1.240\t0.222\t40.745170\t-74.027979   \n",
        ]
        assert parse_gazetteer_lines(lines) == [
            ZipRecord(zip="10001", lat=40.750636, lon=-73.997177),
            ZipRecord(zip="07030", lat=40.745170, lon=-74.027979),
        ]

    def test_skips_bad_rows(self):
        lines = [
            HEADER,
            "\n",
            "10001\t40.7\n",
            "10002\t1\t2\t3\t4\tnorth\t-73.98\n",
            "ABCDE\t1\t2\t3\t4\t40.7\t-73.98\n",
            "10003\t1\t2\t3\t4\tnan\t-73.98\n",
            "10011\t1\t2\t3\t4\t40.740225\t-74.000528\n",
        ]
        assert [r.zip for r in parse_gazetteer_lines(lines)] == ["10011"]

    def test_header_only(self):
        assert parse_gazetteer_lines([HEADER]) == []
        assert parse_gazetteer_lines([]) == []


def test_written_dataset_loads_back(tmp_path: Path):
    records = [
        ZipRecord(zip="10001", lat=40.750636, lon=-73.997177),
        ZipRecord(zip="90210", lat=34.103, lon=-118.4105),
    ]
    path = tmp_path / "out" / "zipcodes.json.gz"
    stats = write_dataset(records, str(path))

    assert path.is_file()
    assert stats["compressed_bytes"] == path.stat().st_size
    assert load_zip_records(str(path)) == records
