"""
PsychonautWiki data source.

API: single GraphQL endpoint, https://api.psychonautwiki.org
One query resolves every cache miss of a batch.
"""

from typing import Any, Sequence

from loguru import logger

from substance_lookup.datasource.base import BaseSubstanceSource
from substance_lookup.datasource.models import (
    SubstanceRecord,
    parse_psychonaut_substance,
)
from substance_lookup.services.client import ServiceClient
from substance_lookup.services.errors import SubstanceParseError
from substance_lookup.services.normalizer import normalize_name

SUBSTANCES_QUERY = """
query getSubstances($names: [String!]!) {
    substances(query: $names) {
        name
        commonNames
        class { chemical psychoactive }
        tolerance { full half zero }
        roas {
            name
            dose {
                units
                threshold
                heavy
                light { min max }
                common { min max }
                strong { min max }
            }
            duration {
                onset { min max units }
                comeup { min max units }
                peak { min max units }
                offset { min max units }
                total { min max units }
                afterglow { min max units }
            }
        }
        uncertainInteractions { name note }
        unsafeInteractions { name note }
        dangerousInteractions { name note }
    }
}
"""


class PsychonautClient(BaseSubstanceSource):
    """
    PsychonautWiki source.

    Provides per-route dose and duration tables, tolerance and
    chemical/psychoactive classes.
    """

    SERVICE_ID = "psychonaut"
    CACHE_PREFIX = "pw"

    def __init__(self, client: ServiceClient | None = None):
        super().__init__(client)
        self.url = self.client.settings.psychonaut_url

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    def is_enabled(self) -> bool:
        return self.client.settings.enable_psychonautwiki

    async def _fetch_missing(
        self,
        missing: list[str],
        names: Sequence[str],
        results: dict[str, SubstanceRecord],
    ) -> None:
        query_names = list(dict.fromkeys(normalize_name(name) for name in missing))

        payload = await self.client.make_graphql_request(
            self.url,
            SUBSTANCES_QUERY,
            {"names": query_names},
            endpoint_id=self.SERVICE_ID,
        )

        for raw in self._extract_substances(payload):
            try:
                record = parse_psychonaut_substance(raw)
            except SubstanceParseError as e:
                logger.warning(f"Skipping PsychonautWiki substance: {e}")
                continue

            self._store_and_match(record, names, results)

    def _extract_substances(self, payload: Any) -> list[Any]:
        """Pull the substances list out of a GraphQL response."""
        if not isinstance(payload, dict):
            return []

        if payload.get("errors"):
            logger.warning(f"PsychonautWiki query returned errors: {payload['errors']}")

        data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        substances = data.get("substances")
        return substances if isinstance(substances, list) else []
