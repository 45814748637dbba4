"""Per-cycle cache of provider record listings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ddns_updater.models import ProviderType, RecordSet
    from ddns_updater.providers.base import BaseDNSProvider


logger = logging.getLogger(__name__)


class CycleRecordCache:
    """
    Cache of `list_records` results for a single update cycle.

    Several configured records usually live in the same zone; the cache
    makes sure each (provider, zone) pair is listed at most once per cycle.
    A new cache is created for every cycle and owned by the updater thread.
    """

    def __init__(self) -> None:
        self._records: dict[tuple[ProviderType, str], RecordSet] = {}

    def get_or_fetch(self, provider: BaseDNSProvider, domain_name: str) -> RecordSet:
        """
        Get the records of a zone, listing them from the provider on a miss.

        Errors from the provider propagate and nothing is cached for the pair.

        Parameters
        ----------
        provider : BaseDNSProvider
            The provider to list records from.
        domain_name : str
            The DNS zone (root domain name).

        Returns
        -------
        RecordSet
            The records of the zone.
        """
        key = (provider.provider_type, domain_name)
        records = self._records.get(key)
        if records is not None:
            logger.debug("[%s] Reusing cached records for '%s'", provider.name, domain_name)
            return records

        logger.debug("[%s] Querying records for '%s'", provider.name, domain_name)
        records = provider.list_records(domain_name)
        self._records[key] = records
        return records

    def __len__(self) -> int:
        return len(self._records)
