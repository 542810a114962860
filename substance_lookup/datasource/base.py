"""
Base substance source interface.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from loguru import logger

from substance_lookup.datasource.models import SubstanceRecord
from substance_lookup.services.client import ServiceClient
from substance_lookup.services.normalizer import cache_key, normalize_name


class BaseSubstanceSource(ABC):
    """
    Abstract base class for substance sources.

    All sources should:
    - Use ServiceClient for requests (cache, dedup, retry, breaker)
    - Return records tagged with their own source name
    - Never raise from lookup(); a failed batch yields a partial result
    """

    CACHE_PREFIX: str

    def __init__(self, client: ServiceClient | None = None):
        from substance_lookup.services.client import get_service_client

        self.client = client or get_service_client()

    @property
    @abstractmethod
    def service_id(self) -> str:
        """Unique identifier for this source."""
        ...

    @abstractmethod
    def is_enabled(self) -> bool:
        """Check if the source is switched on in settings."""
        ...

    @abstractmethod
    async def _fetch_missing(
        self,
        missing: list[str],
        names: Sequence[str],
        results: dict[str, SubstanceRecord],
    ) -> None:
        """Fetch records for names that missed the cache, adding them to results."""
        ...

    def cache_key(self, name: str) -> str | None:
        return cache_key(self.CACHE_PREFIX, name)

    async def lookup(self, names: Sequence[str]) -> dict[str, SubstanceRecord]:
        """
        Resolve substance names to records.

        Args:
            names: Raw names as found on the page

        Returns:
            Mapping from each resolved raw name to its record. Names that are
            unknown, or whose fetch failed, are simply absent.
        """
        if not self.is_enabled() or not isinstance(names, (list, tuple)):
            return {}

        results: dict[str, SubstanceRecord] = {}
        missing: list[str] = []

        for name in names:
            key = self.cache_key(name)
            if key is None:
                continue

            cached = self.client.cache.get(key)
            if cached is not None:
                results[name] = cached
            else:
                missing.append(name)

        if not missing:
            return results

        try:
            await self._fetch_missing(missing, names, results)
        except Exception as e:
            logger.error(f"Failed to fetch {self.service_id} data: {e}")

        return results

    def _store_and_match(
        self,
        record: SubstanceRecord,
        names: Sequence[str],
        results: dict[str, SubstanceRecord],
        extra_names: Sequence[str] = (),
    ) -> None:
        """Cache a fresh record and map every input name that refers to it."""
        for alias in (record.name, *record.alternate_names, *extra_names):
            self.client.cache.set(self.cache_key(alias), record)

        extra = {normalize_name(n) for n in extra_names}
        for original in names:
            normalized = normalize_name(original)
            if record.matches(normalized) or (normalized and normalized in extra):
                results[original] = record
