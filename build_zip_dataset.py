"""
Build data/zipcodes.json.gz from the Census ZCTA gazetteer file.

Usage:
    python build_zip_dataset.py 2024_Gaz_zcta_national.txt
    python build_zip_dataset.py 2024_Gaz_zcta_national.txt -o data/zipcodes.json.gz
"""

import argparse
import sys

from printnearby.core.config import settings
from printnearby.logging import configure_logging
from printnearby.services.zip_dataset import parse_gazetteer_lines, write_dataset


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("input", help="Tab-separated Census gazetteer file")
    parser.add_argument("-o", "--output", default=settings.ZIP_DATASET_PATH)
    args = parser.parse_args()

    configure_logging()
    try:
        with open(args.input, "r", encoding="utf-8") as f:
            records = parse_gazetteer_lines(f)
    except FileNotFoundError:
        print(f"Input file not found: {args.input}", file=sys.stderr)
        sys.exit(2)

    if not records:
        print("No ZIP codes parsed; refusing to write an empty dataset.", file=sys.stderr)
        sys.exit(1)

    stats = write_dataset(records, args.output)
    print(f"Wrote {len(records)} ZIP codes to {args.output}")
    print(f"Original size:   {stats['original_bytes']} bytes")
    print(f"Compressed size: {stats['compressed_bytes']} bytes")


if __name__ == "__main__":
    main()
