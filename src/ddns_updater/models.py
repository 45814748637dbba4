"""
Data models for DDNS Updater.

This module defines the core data structures used throughout the application,
including enumerations for providers, IP families and provider scopes, the
resolved public address set, configured record targets and the normalized
records returned by provider APIs.
"""

from __future__ import annotations

from enum import StrEnum
from ipaddress import IPv4Address, IPv6Address
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from ddns_updater.exceptions import DDNSError


class ProviderType(StrEnum):
    """
    Supported DNS providers.

    Attributes
    ----------
    DIGITALOCEAN : str
        DigitalOcean Domains API.
    HETZNER : str
        Hetzner Cloud DNS API.
    """

    DIGITALOCEAN = "digitalocean"
    HETZNER = "hetzner"


class IpFamily(StrEnum):
    """IP address family of a resolved public address."""

    V4 = "ipv4"
    V6 = "ipv6"


class ProviderScope(StrEnum):
    """
    Which configured providers a record should be updated on.

    Attributes
    ----------
    ALL_CONFIGURED : str
        No explicit list was configured; every provider applies (subject to
        the global default-update flag).
    NONE : str
        An empty list was configured; no provider applies.
    EXPLICIT : str
        An explicit provider list was configured.
    """

    ALL_CONFIGURED = "all"
    NONE = "none"
    EXPLICIT = "explicit"


class PublicAddressSet(BaseModel):
    """
    Public IP addresses of the current host, resolved once per cycle.

    Attributes
    ----------
    ipv4 : IPv4Address | None
        The public IPv4 address, if resolved.
    ipv6 : IPv6Address | None
        The public IPv6 address, if resolved.
    """

    model_config = ConfigDict(frozen=True)

    ipv4: IPv4Address | None = None
    ipv6: IPv6Address | None = None

    def has_any(self) -> bool:
        """Return True if at least one address family was resolved."""
        return self.ipv4 is not None or self.ipv6 is not None

    def get(self, family: IpFamily) -> IPv4Address | IPv6Address | None:
        """
        Get the address of a given family.

        Parameters
        ----------
        family : IpFamily
            The requested address family.

        Returns
        -------
        IPv4Address | IPv6Address | None
            The address, or None if that family was not resolved.
        """
        if family == IpFamily.V4:
            return self.ipv4
        return self.ipv6

    def any(self) -> tuple[IPv4Address | IPv6Address, IpFamily] | None:
        """
        Get any resolved address, preferring IPv4.

        Returns
        -------
        tuple[IPv4Address | IPv6Address, IpFamily] | None
            The address and its family, or None if nothing was resolved.
        """
        if self.ipv4 is not None:
            return self.ipv4, IpFamily.V4
        if self.ipv6 is not None:
            return self.ipv6, IpFamily.V6
        return None

    def __str__(self) -> str:
        ipv4 = str(self.ipv4) if self.ipv4 is not None else "none"
        ipv6 = str(self.ipv6) if self.ipv6 is not None else "none"
        return f"IPv4: {ipv4}, IPv6: {ipv6}"


class DomainRecordTarget(BaseModel):
    """
    A configured domain record that should track the public IP.

    Attributes
    ----------
    domain_name : str
        The DNS zone (root domain name, e.g., "example.com").
    hostname_part : str
        The host record name (e.g., "home", "@").
    record_type : str
        The record type (e.g., "A", "AAAA").
    providers : tuple[ProviderType, ...] | None
        Explicit provider list, or None when no list was configured.
    """

    model_config = ConfigDict(frozen=True)

    domain_name: str
    hostname_part: str
    record_type: str
    providers: tuple[ProviderType, ...] | None = None

    @property
    def scope(self) -> ProviderScope:
        """Get the provider scope of this record."""
        if self.providers is None:
            return ProviderScope.ALL_CONFIGURED
        if not self.providers:
            return ProviderScope.NONE
        return ProviderScope.EXPLICIT

    @property
    def fqdn(self) -> str:
        """Get the fully qualified domain name of this record."""
        if self.hostname_part in {"@", ""}:
            return self.domain_name
        return f"{self.hostname_part}.{self.domain_name}"

    def should_update_on(
        self,
        provider_type: ProviderType,
        update_all_providers_by_default: bool,
    ) -> bool:
        """
        Check whether this record should be updated on a provider.

        Parameters
        ----------
        provider_type : ProviderType
            The provider to check.
        update_all_providers_by_default : bool
            Whether records without an explicit provider list are updated
            on every configured provider.

        Returns
        -------
        bool
            True if the provider is in scope for this record.
        """
        scope = self.scope
        if scope == ProviderScope.ALL_CONFIGURED:
            return update_all_providers_by_default
        if scope == ProviderScope.NONE:
            return False
        return provider_type in (self.providers or ())

    def describe_providers(self) -> str:
        """Describe the provider scope for log messages."""
        scope = self.scope
        if scope == ProviderScope.ALL_CONFIGURED:
            return "all"
        if scope == ProviderScope.NONE:
            return "none"
        return ", ".join(p.value for p in self.providers or ())


class RemoteRecord(BaseModel):
    """
    A DNS record as returned by a provider, normalized to a common shape.

    Attributes
    ----------
    id : str
        Provider-native record identifier.
    record_type : str
        The record type (e.g., "A", "AAAA").
    name : str
        The hostname part relative to the zone ("@" for the apex).
    value : str
        The current record value.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    record_type: str
    name: str
    value: str


RecordSet = tuple[RemoteRecord, ...]


class UpdateOutcome:
    """
    Outcome of updating one record on one provider.

    Attributes
    ----------
    provider : str
        The provider name.
    attempted : bool
        Whether the provider was in scope and an attempt was made.
    success : bool
        Whether the attempt succeeded.
    updated : bool
        Whether the provider record was changed.
    ip_family : IpFamily | None
        The address family compared against the record.
    error : DDNSError | None
        The error raised by the attempt, if any.
    """

    def __init__(
        self,
        *,
        provider: str,
        attempted: bool,
        success: bool,
        updated: bool = False,
        ip_family: IpFamily | None = None,
        error: DDNSError | None = None,
    ) -> None:
        self.provider = provider
        self.attempted = attempted
        self.success = success
        self.updated = updated
        self.ip_family = ip_family
        self.error = error

    def __repr__(self) -> str:
        return (
            f"UpdateOutcome(provider={self.provider!r}, attempted={self.attempted}, "
            f"success={self.success}, updated={self.updated}, error={self.error!r})"
        )


class RecordUpdateResult:
    """
    Aggregated outcome of updating one record across all providers.

    Attributes
    ----------
    target : DomainRecordTarget
        The record that was processed.
    outcomes : list[UpdateOutcome]
        One outcome per configured provider.
    error : DDNSError | None
        The error surfaced for this record, if any.
    """

    def __init__(
        self,
        target: DomainRecordTarget,
        outcomes: list[UpdateOutcome],
        error: DDNSError | None = None,
    ) -> None:
        self.target = target
        self.outcomes = outcomes
        self.error = error

    @property
    def success(self) -> bool:
        """Whether the record was processed without error."""
        return self.error is None

    @property
    def success_count(self) -> int:
        """Number of providers that were updated successfully."""
        return sum(1 for o in self.outcomes if o.attempted and o.success)

    @property
    def failure_count(self) -> int:
        """Number of providers that failed."""
        return sum(1 for o in self.outcomes if o.attempted and not o.success)

    @property
    def filtered_count(self) -> int:
        """Number of providers that were out of scope for this record."""
        return sum(1 for o in self.outcomes if not o.attempted)

    @property
    def ip_family(self) -> IpFamily | None:
        """The address family of the first successful provider attempt."""
        for outcome in self.outcomes:
            if outcome.success and outcome.ip_family is not None:
                return outcome.ip_family
        return None
