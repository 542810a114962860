"""
SubstanceLookup - combines the sources in priority order.

Each name is answered by the first source that has it; records from
different sources are never merged.
"""

from typing import Any, Sequence

from loguru import logger

from substance_lookup.datasource.base import BaseSubstanceSource
from substance_lookup.datasource.models import SubstanceRecord
from substance_lookup.datasource.psychonaut import PsychonautClient
from substance_lookup.datasource.tripsit import TripSitClient
from substance_lookup.services.client import ServiceClient


class SubstanceLookup:
    """
    Usage:
        async with SubstanceLookup() as lookup:
            records = await lookup.lookup(["LSD", "Molly"])
    """

    def __init__(
        self,
        client: ServiceClient | None = None,
        sources: Sequence[BaseSubstanceSource] | None = None,
    ):
        self.client = client or ServiceClient()
        self.sources: list[BaseSubstanceSource] = list(
            sources
            if sources is not None
            else (PsychonautClient(self.client), TripSitClient(self.client))
        )

    def enabled_sources(self) -> list[BaseSubstanceSource]:
        return [source for source in self.sources if source.is_enabled()]

    async def lookup(self, names: Sequence[str]) -> dict[str, SubstanceRecord]:
        """Resolve names, asking each later source only for what is still missing."""
        if not isinstance(names, (list, tuple)):
            return {}

        results: dict[str, SubstanceRecord] = {}
        pending = list(dict.fromkeys(name for name in names if name))

        for source in self.enabled_sources():
            if not pending:
                break

            found = await source.lookup(pending)
            results.update(found)
            pending = [name for name in pending if name not in found]

        if pending:
            logger.debug(f"No data for {len(pending)} names: {pending[:10]}")
        return results

    def get_health_status(self) -> dict[str, Any]:
        return {
            "sources": [source.service_id for source in self.enabled_sources()],
            **self.client.get_health_status(),
        }

    async def close(self) -> None:
        await self.client.close()

    async def __aenter__(self) -> "SubstanceLookup":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
