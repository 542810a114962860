"""
Substance lookup entry point.
Resolves substance names against PsychonautWiki and TripSit and prints JSON.
"""

import argparse
import asyncio
import json
import sys

from loguru import logger

from substance_lookup.datasource import PsychonautClient, SubstanceLookup, TripSitClient
from substance_lookup.services.client import ServiceClient
from substance_lookup.settings import global_settings


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Look up substance information")
    parser.add_argument("names", nargs="+", help="Substance names, e.g. LSD Molly")
    parser.add_argument(
        "--source",
        choices=["all", "psychonaut", "tripsit"],
        default="all",
        help="Restrict the lookup to one source",
    )
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    """Run the lookup and print the results as JSON."""
    args = parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level=global_settings.log_level.upper())

    client = ServiceClient()
    sources = {
        "psychonaut": [PsychonautClient(client)],
        "tripsit": [TripSitClient(client)],
    }.get(args.source)

    async with SubstanceLookup(client=client, sources=sources) as lookup:
        logger.info(f"Looking up {len(args.names)} names...")
        results = await lookup.lookup(args.names)

        missing = [name for name in args.names if name not in results]
        if missing:
            logger.warning(f"No data found for: {', '.join(missing)}")

        print(
            json.dumps(
                {name: record.to_display_dict() for name, record in results.items()},
                indent=2,
                ensure_ascii=False,
            )
        )
        logger.debug(f"Health: {lookup.get_health_status()}")

    return 0 if results else 1


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
