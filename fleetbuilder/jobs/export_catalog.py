"""
Export the hosted unit catalog to a local JSON file.

Point CATALOG_PATH at the written file to run the app without reaching the
hosted catalog on every startup.
"""

import asyncio
import logging
import sys
from pathlib import Path

from fleetbuilder.clients.supabase import SupabaseClient
from fleetbuilder.services.catalog import write_catalog_file

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_PATH = Path("data/catalog.json")


async def run_export(path: Path = DEFAULT_EXPORT_PATH) -> int:
    """
    Fetch the catalog and write it to `path`.

    Returns:
        Number of units exported
    """
    logger.info("Fetching unit catalog...")

    async with SupabaseClient.from_settings() as client:
        units = await client.fetch_catalog()

    write_catalog_file(units, path)
    return len(units)


def main() -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_EXPORT_PATH
    count = asyncio.run(run_export(path))
    logger.info("Exported %d units to %s", count, path)


if __name__ == "__main__":
    main()
