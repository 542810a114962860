"""
TripSit data source.

API: https://tripbot.tripsit.me/api/tripsit
The API has no bulk lookup, so a batch is resolved in phases:
1. fetch the full drug directory
2. match each cache miss by name or alias
3. fetch details for each match, one request at a time
"""

from typing import Any, Sequence
from urllib.parse import quote

from loguru import logger

from substance_lookup.datasource.base import BaseSubstanceSource
from substance_lookup.datasource.models import SubstanceRecord, parse_tripsit_drug
from substance_lookup.services.client import ServiceClient
from substance_lookup.services.errors import SubstanceParseError
from substance_lookup.services.normalizer import normalize_name


def unwrap_data(payload: Any) -> Any:
    """Follow up to two ``data`` wrappers, then unwrap a single-item list."""
    node = payload
    for _ in range(2):
        if not (isinstance(node, dict) and "data" in node):
            break
        node = node["data"]

    if isinstance(node, list) and len(node) == 1 and isinstance(node[0], (dict, list)):
        node = node[0]
    return node


class TripSitClient(BaseSubstanceSource):
    """
    TripSit source.

    Provides dosage, duration, effects, warnings, categories and the
    combination table.
    """

    SERVICE_ID = "tripsit"
    CACHE_PREFIX = "tripsit"

    def __init__(self, client: ServiceClient | None = None):
        super().__init__(client)
        base_url = self.client.settings.tripsit_base_url.rstrip("/")
        self.names_url = f"{base_url}/getAllDrugNames"
        self.all_drugs_url = f"{base_url}/getAllDrugs"
        self.drug_url = f"{base_url}/getDrug"

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    def is_enabled(self) -> bool:
        return self.client.settings.enable_tripsit

    async def get_all_drug_names(self) -> list[str]:
        """Fetch the plain list of drug names TripSit knows about."""
        payload = await self.client.make_api_request(self.names_url)
        node = unwrap_data(payload)
        if isinstance(node, dict):
            node = node.get("names") or node.get("drugs")
        if not isinstance(node, list):
            raise SubstanceParseError(
                "Invalid TripSit API response format", service_id=self.SERVICE_ID
            )
        return [name for name in node if isinstance(name, str)]

    async def _fetch_missing(
        self,
        missing: list[str],
        names: Sequence[str],
        results: dict[str, SubstanceRecord],
    ) -> None:
        drugs = await self._get_drug_directory()

        # drug name -> raw names that resolved to it
        matched: dict[str, list[str]] = {}
        for name in missing:
            match = self._find_match(normalize_name(name), drugs)
            if match:
                matched.setdefault(match, []).append(name)

        # Detail requests run one at a time
        for drug_name, aliases in matched.items():
            try:
                payload = await self.client.make_api_request(
                    f"{self.drug_url}?name={quote(drug_name)}"
                )
                record = parse_tripsit_drug(unwrap_data(payload))
            except Exception as e:
                logger.warning(f"Failed to fetch TripSit details for {drug_name}: {e}")
                continue

            self._store_and_match(
                record, names, results, extra_names=[drug_name, *aliases]
            )

    async def _get_drug_directory(self) -> list[dict[str, Any]]:
        """Fetch every drug with its aliases."""
        payload = await self.client.make_api_request(self.all_drugs_url)
        node = unwrap_data(payload)
        drugs = node.get("drugs", node) if isinstance(node, dict) else node

        if isinstance(drugs, dict):
            drugs = list(drugs.values())
        directory = (
            [drug for drug in drugs if isinstance(drug, dict)]
            if isinstance(drugs, list)
            else []
        )
        if not directory:
            raise SubstanceParseError(
                "Invalid TripSit API response format", service_id=self.SERVICE_ID
            )
        return directory

    def _find_match(self, normalized: str, drugs: list[dict[str, Any]]) -> str | None:
        """Name of the first drug whose name or alias normalizes to `normalized`."""
        if not normalized:
            return None

        for drug in drugs:
            name = drug.get("name")
            if not name:
                continue
            if normalize_name(name) == normalized:
                return name
            aliases = drug.get("aliases")
            if isinstance(aliases, list) and any(
                normalize_name(alias) == normalized for alias in aliases
            ):
                return name
        return None
