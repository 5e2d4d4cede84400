"""
Download Scryfall card data.

Run this job before import_cards to fetch the latest bulk card file.
"""

import argparse
import asyncio
import logging
from pathlib import Path

from synergyforge.services.catalog import DEFAULT_BULK_TYPE, download_card_file

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = Path("data") / "oracle-cards.json"


async def run_download(
    output_path: Path = DEFAULT_OUTPUT,
    bulk_type: str = DEFAULT_BULK_TYPE,
) -> Path:
    """Download the Scryfall bulk file."""
    logger.info("Downloading Scryfall %s bulk data...", bulk_type)

    try:
        path = await download_card_file(output_path, bulk_type)
        logger.info("Downloaded card data to %s", path)
    except Exception as e:
        logger.error("Failed to download card data: %s", e)
        raise
    return path


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Download Scryfall bulk card data")
    parser.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_OUTPUT,
        help="Where to save the file",
    )
    parser.add_argument(
        "--bulk-type",
        default=DEFAULT_BULK_TYPE,
        help="Scryfall bulk data type",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_download(args.output, args.bulk_type))


if __name__ == "__main__":
    main()
