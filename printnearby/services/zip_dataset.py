# printnearby/services/zip_dataset.py
# Converts the Census ZCTA gazetteer text file into zipcodes.json.gz.

import gzip
import json
import math
import os
from typing import Dict, Iterable, List

import structlog

from printnearby.models.dto import ZipRecord

logger = structlog.get_logger(__name__)


def parse_gazetteer_lines(lines: Iterable[str]) -> List[ZipRecord]:
    """
    Parse tab-separated Census gazetteer rows.

    The first line is a header. ZIP is the first column, latitude and
    longitude are the last two. Blank, short or unparsable rows are skipped.
    """
    records: List[ZipRecord] = []
    skipped = 0
    iterator = iter(lines)
    header = next(iterator, None)
    if header is not None:
        logger.info("gazetteer_header", columns=header.rstrip("\n").split("\t"))

    for raw in iterator:
        line = raw.strip()
        if not line:
            continue
        columns = line.split("\t")
        if len(columns) < 3:
            skipped += 1
            continue
        zip_code = columns[0].strip()
        try:
            lat = float(columns[-2])
            lon = float(columns[-1])
        except ValueError:
            skipped += 1
            continue
        if not (zip_code.isdigit() and len(zip_code) == 5) or not (math.isfinite(lat) and math.isfinite(lon)):
            skipped += 1
            continue
        records.append(ZipRecord(zip=zip_code, lat=lat, lon=lon))

    logger.info("gazetteer_parsed", zip_codes=len(records), skipped=skipped)
    return records


def write_dataset(records: Iterable[ZipRecord], output_path: str) -> Dict[str, int]:
    """Write records as a gzip-compressed JSON array; returns size statistics."""
    payload = json.dumps([r.model_dump() for r in records], separators=(",", ":")).encode("utf-8")
    compressed = gzip.compress(payload)

    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(output_path, "wb") as f:
        f.write(compressed)

    stats = {"original_bytes": len(payload), "compressed_bytes": len(compressed)}
    logger.info(
        "dataset_written",
        path=output_path,
        compression_ratio=round(1 - len(compressed) / max(len(payload), 1), 2),
        **stats,
    )
    return stats
