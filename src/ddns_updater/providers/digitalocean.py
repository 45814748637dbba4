"""
DigitalOcean DNS provider implementation.

This module implements the DigitalOcean Domains API v2 for listing and
updating domain records. Authentication uses a personal access token.
"""

from __future__ import annotations

import logging
from ipaddress import ip_address
from typing import TYPE_CHECKING

from starlette import status as st_status

from ddns_updater.exceptions import (
    ProviderAPIError,
    ProviderProtocolError,
    RecordNotFoundError,
    VerificationError,
    ZoneNotFoundError,
)
from ddns_updater.models import ProviderType, RemoteRecord
from ddns_updater.providers.base import BaseDNSProvider

if TYPE_CHECKING:
    from ipaddress import IPv4Address, IPv6Address
    from typing import Any, Final

    import httpx

    from ddns_updater.models import DomainRecordTarget, RecordSet


# DigitalOcean API base URL
DO_API_BASE: Final[str] = "https://api.digitalocean.com/v2"

# Records requested per page (API maximum is 200)
DO_PAGE_SIZE: Final[int] = 200


logger = logging.getLogger(__name__)


class DigitalOceanProvider(BaseDNSProvider):
    """
    DigitalOcean DNS provider.

    DigitalOcean returns record names relative to the zone ("home", "@"),
    and numeric record ids.
    """

    @property
    def name(self) -> str:
        """Get the provider name."""
        return "DigitalOcean"

    @property
    def provider_type(self) -> ProviderType:
        """Get the provider type."""
        return ProviderType.DIGITALOCEAN

    def list_records(self, domain_name: str) -> RecordSet:
        """
        Fetch all records of a DigitalOcean domain.

        Parameters
        ----------
        domain_name : str
            The DNS zone (root domain name).

        Returns
        -------
        RecordSet
            The normalized records.
        """
        url: str | None = f"{DO_API_BASE}/domains/{domain_name}/records"
        params: dict[str, int] | None = {"per_page": DO_PAGE_SIZE}
        records: list[RemoteRecord] = []

        while url:
            response = self._request("GET", url, params=params)
            if response.status_code == st_status.HTTP_404_NOT_FOUND:
                msg = f"Domain '{domain_name}' not found in {self.name}"
                raise ZoneNotFoundError(msg)
            self._raise_for_error(response, f"Failed to list records of '{domain_name}'")

            data = self._json(response)
            raw_records = data.get("domain_records")
            if not isinstance(raw_records, list):
                msg = f"Missing 'domain_records' in {self.name} response for '{domain_name}'"
                raise ProviderProtocolError(self.name, msg)

            records.extend(self._to_remote_record(raw, domain_name) for raw in raw_records)

            # The "next" link already carries the paging query parameters
            url = self._lookup(data, "links", "pages", "next")
            if url is not None and not isinstance(url, str):
                msg = f"Invalid next page link in {self.name} response: {url!r}"
                raise ProviderProtocolError(self.name, msg)
            params = None

        logger.debug(
            "[%s] Found %d records for zone '%s'",
            self.name,
            len(records),
            domain_name,
        )
        return tuple(records)

    def update_record(
        self,
        record_id: str,
        target: DomainRecordTarget,
        new_ip: IPv4Address | IPv6Address,
    ) -> None:
        """
        Update the data of a DigitalOcean domain record.

        Parameters
        ----------
        record_id : str
            The numeric record id.
        target : DomainRecordTarget
            The configured record being updated.
        new_ip : IPv4Address | IPv6Address
            The IP address to set.
        """
        fqdn = target.fqdn
        url = f"{DO_API_BASE}/domains/{target.domain_name}/records/{record_id}"

        response = self._request("PUT", url, json={"data": str(new_ip)})
        if response.status_code == st_status.HTTP_404_NOT_FOUND:
            msg = f"Domain record '{fqdn}' (id {record_id}) not found in {self.name}"
            raise RecordNotFoundError(msg)
        self._raise_for_error(response, f"Failed to update domain record for '{fqdn}'")

        data = self._json(response)
        returned = self._lookup(data, "domain_record", "data")
        try:
            response_ip = ip_address(str(returned))
        except ValueError as e:
            msg = f"{self.name} returned an invalid IP '{returned}' for '{fqdn}'"
            raise ProviderProtocolError(self.name, msg) from e

        if response_ip != new_ip:
            msg = (
                f"Failed to update IP for '{fqdn}': {self.name} reports "
                f"'{response_ip}' instead of '{new_ip}'"
            )
            raise VerificationError(self.name, msg)

        logger.info("[%s] Successfully updated public IP for '%s'", self.name, fqdn)

    def _to_remote_record(self, raw: Any, domain_name: str) -> RemoteRecord:
        try:
            return RemoteRecord(
                id=str(raw["id"]),
                record_type=str(raw["type"]),
                name=self.normalize_hostname(str(raw["name"]), domain_name),
                value=str(raw["data"]),
            )
        except (KeyError, TypeError) as e:
            msg = f"Malformed domain record in {self.name} response: {raw!r}"
            raise ProviderProtocolError(self.name, msg) from e

    def _raise_for_error(self, response: httpx.Response, context: str) -> None:
        """
        Raise ProviderAPIError for non-2xx responses.

        DigitalOcean error bodies look like `{"id": "...", "message": "..."}`.
        """
        if response.is_success:
            return
        code: str | None = None
        message = response.text
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            code = body.get("id")
            message = body.get("message", message)
        msg = f"{context}: {self.name} API error ({code or response.status_code}): {message}"
        raise ProviderAPIError(
            self.name,
            msg,
            code=code,
            status_code=response.status_code,
        )
