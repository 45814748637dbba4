"""
Hetzner Cloud DNS provider implementation.

This module implements the Hetzner Cloud DNS API (zones and RRSets).
Records are addressed through an opaque zone id, which is looked up by
zone name once and then memoized for the lifetime of the client.
"""

from __future__ import annotations

import logging
import threading
from ipaddress import ip_address
from typing import TYPE_CHECKING

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
    from pydantic import SecretStr

    from ddns_updater.models import DomainRecordTarget, RecordSet


# Hetzner Cloud API base URL
HETZNER_API_BASE: Final[str] = "https://api.hetzner.cloud/v1"

# RRSets requested per page
HETZNER_PAGE_SIZE: Final[int] = 100


logger = logging.getLogger(__name__)


class HetznerProvider(BaseDNSProvider):
    """
    Hetzner Cloud DNS provider.

    Hetzner returns RRSets whose names may be fully qualified
    ("home.example.com") or relative ("home", "@"); names are normalized to
    the hostname part. RRSet ids have the form "name/type".
    """

    def __init__(
        self,
        token: SecretStr | str,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(token, transport=transport)
        self._zone_cache: dict[str, str] = {}
        self._zone_cache_lock = threading.Lock()

    @property
    def name(self) -> str:
        """Get the provider name."""
        return "Hetzner Cloud"

    @property
    def provider_type(self) -> ProviderType:
        """Get the provider type."""
        return ProviderType.HETZNER

    def find_zone_id(self, zone_name: str) -> str:
        """
        Find the zone id for a zone name, memoizing the result.

        Parameters
        ----------
        zone_name : str
            The DNS zone (root domain name).

        Returns
        -------
        str
            The Hetzner zone id.

        Raises
        ------
        ZoneNotFoundError
            If the zone does not exist in the Hetzner project.
        """
        zone_id = self._zone_cache.get(zone_name)
        if zone_id is not None:
            logger.debug("[%s] Zone ID for '%s' found in cache: %s", self.name, zone_name, zone_id)
            return zone_id

        response = self._request(
            "GET",
            f"{HETZNER_API_BASE}/zones",
            params={"name": zone_name},
        )
        self._raise_for_error(response, f"Failed to query zones for '{zone_name}'")
        data = self._json(response)

        zones = data.get("zones")
        if not isinstance(zones, list):
            msg = f"Missing 'zones' in {self.name} response"
            raise ProviderProtocolError(self.name, msg)

        for zone in zones:
            if isinstance(zone, dict) and zone.get("name") == zone_name:
                zone_id = str(zone.get("id"))
                break
        else:
            msg = f"Zone '{zone_name}' not found in {self.name}. Please create it first."
            raise ZoneNotFoundError(msg)

        with self._zone_cache_lock:
            self._zone_cache.setdefault(zone_name, zone_id)

        logger.debug("[%s] Found zone '%s' with ID: %s", self.name, zone_name, zone_id)
        return zone_id

    def list_records(self, domain_name: str) -> RecordSet:
        """
        Fetch all RRSets of a Hetzner zone.

        Parameters
        ----------
        domain_name : str
            The DNS zone (root domain name).

        Returns
        -------
        RecordSet
            The normalized records, one per RRSet.
        """
        zone_id = self.find_zone_id(domain_name)
        url = f"{HETZNER_API_BASE}/zones/{zone_id}/rrsets"

        records: list[RemoteRecord] = []
        page: int | None = 1
        while page is not None:
            response = self._request(
                "GET",
                url,
                params={"page": page, "per_page": HETZNER_PAGE_SIZE},
            )
            self._raise_for_error(
                response,
                f"Failed to list RRSets of '{domain_name}'",
                zone_name=domain_name,
            )
            data = self._json(response)

            rrsets = data.get("rrsets")
            if not isinstance(rrsets, list):
                msg = f"Missing 'rrsets' in {self.name} response for '{domain_name}'"
                raise ProviderProtocolError(self.name, msg)

            for rrset in rrsets:
                logger.debug(
                    "[%s] Retrieved RRSet: %s",
                    self.name,
                    rrset,
                )
                records.append(self._to_remote_record(rrset, domain_name))

            page = self._lookup(data, "meta", "pagination", "next_page")
            if page is not None and not isinstance(page, int):
                msg = f"Invalid next page in {self.name} response: {page!r}"
                raise ProviderProtocolError(self.name, msg)

        logger.debug(
            "[%s] Found %d RRSets for zone '%s'",
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
        Replace the records of a Hetzner RRSet with the new IP.

        Hetzner answers `set_records` with an action rather than the RRSet,
        so the RRSet is read back to verify the stored value.

        Parameters
        ----------
        record_id : str
            The RRSet id ("name/type").
        target : DomainRecordTarget
            The configured record being updated.
        new_ip : IPv4Address | IPv6Address
            The IP address to set.
        """
        fqdn = target.fqdn
        rr_name, sep, rr_type = record_id.partition("/")
        if not sep or not rr_name or not rr_type:
            msg = f"Invalid RRSet ID format: '{record_id}'. Expected 'name/type'"
            raise ProviderProtocolError(self.name, msg)

        zone_id = self.find_zone_id(target.domain_name)
        rrset_url = f"{HETZNER_API_BASE}/zones/{zone_id}/rrsets/{rr_name}/{rr_type}"

        response = self._request(
            "POST",
            f"{rrset_url}/actions/set_records",
            json={"records": [{"value": str(new_ip)}]},
        )
        self._raise_for_error(
            response,
            f"Failed to update RRSet for '{fqdn}'",
            record_id=record_id,
        )
        action = self._json(response).get("action", {})
        if isinstance(action, dict) and action.get("status") == "error":
            error = action.get("error") or {}
            msg = f"{self.name} action for '{fqdn}' failed: {error.get('message', 'unknown error')}"
            raise ProviderAPIError(self.name, msg, code=error.get("code"))

        response = self._request("GET", rrset_url)
        self._raise_for_error(
            response,
            f"Failed to read back RRSet for '{fqdn}'",
            record_id=record_id,
        )
        rrset = self._json(response).get("rrset")
        stored = self._to_remote_record(rrset, target.domain_name).value
        try:
            stored_ip = ip_address(stored)
        except ValueError as e:
            msg = f"{self.name} returned an invalid IP '{stored}' for '{fqdn}'"
            raise ProviderProtocolError(self.name, msg) from e

        if stored_ip != new_ip:
            msg = (
                f"Failed to update IP for '{fqdn}': {self.name} reports "
                f"'{stored_ip}' instead of '{new_ip}'"
            )
            raise VerificationError(self.name, msg)

        logger.info("[%s] Successfully updated public IP for '%s'", self.name, fqdn)

    def _to_remote_record(self, rrset: Any, zone_name: str) -> RemoteRecord:
        """Convert an RRSet to a RemoteRecord, using its first record value."""
        if not isinstance(rrset, dict):
            msg = f"Malformed RRSet in {self.name} response: {rrset!r}"
            raise ProviderProtocolError(self.name, msg)
        try:
            name = str(rrset["name"])
            record_type = str(rrset["type"])
            values = rrset["records"]
            rrset_id = str(rrset["id"])
        except KeyError as e:
            msg = f"Malformed RRSet in {self.name} response: {rrset!r}"
            raise ProviderProtocolError(self.name, msg) from e

        first = values[0] if isinstance(values, list) and values else None
        if not isinstance(first, dict):
            msg = f"RRSet '{name}' (type: {record_type}) has no records"
            raise ProviderProtocolError(self.name, msg)

        return RemoteRecord(
            id=rrset_id,
            record_type=record_type,
            name=self.normalize_hostname(name, zone_name),
            value=str(first.get("value", "")),
        )

    def _raise_for_error(
        self,
        response: httpx.Response,
        context: str,
        *,
        zone_name: str | None = None,
        record_id: str | None = None,
    ) -> None:
        """
        Raise a provider error for non-2xx responses.

        Hetzner error bodies look like
        `{"error": {"code": "...", "message": "..."}}`.
        """
        if response.is_success:
            return

        try:
            body = response.json()
        except ValueError:
            body = None
        error = body.get("error") if isinstance(body, dict) else None
        if not isinstance(error, dict):
            msg = f"{context}: HTTP {response.status_code} error: {response.text}"
            raise ProviderAPIError(self.name, msg, status_code=response.status_code)

        code = error.get("code")
        message = error.get("message", "")
        if code == "incorrect_zone_mode":
            zone = f"Zone '{zone_name}'" if zone_name else "Zone"
            msg = f"{context}: {zone} is in secondary mode and cannot be managed via API"
        elif code == "not_found" and record_id is not None:
            msg = f"{context}: RRSet '{record_id}' not found in zone"
            raise RecordNotFoundError(msg)
        else:
            msg = f"{context}: {self.name} API error ({code}): {message}"
        raise ProviderAPIError(
            self.name,
            msg,
            code=code,
            status_code=response.status_code,
        )
