"""
Public IP address resolution.

The public address of the host is resolved by asking the OpenDNS resolvers
for `myip.opendns.com`, which they answer with the address the query came
from. IPv4 and IPv6 are looked up independently, each through resolvers
reachable over that family.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from ipaddress import IPv4Address, IPv6Address
from typing import TYPE_CHECKING

import dns.exception
import dns.resolver

from ddns_updater.exceptions import ResolutionError
from ddns_updater.models import PublicAddressSet

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from typing import Final


# OpenDNS resolvers, see https://en.wikipedia.org/wiki/OpenDNS
OPEN_DNS_IPV4: Final[tuple[str, ...]] = ("208.67.222.222", "208.67.220.220")
OPEN_DNS_IPV6: Final[tuple[str, ...]] = ("2620:119:35::35", "2620:119:53::53")

# Hostname the OpenDNS resolvers answer with the client address
MYIP_HOSTNAME: Final[str] = "myip.opendns.com."

# Total time allowed for one family lookup, in seconds
DNS_TIMEOUT: Final[float] = 5.0


logger = logging.getLogger(__name__)


class PublicIpResolver(ABC):
    """Abstract source of the host's public IP addresses."""

    @abstractmethod
    def fetch(self, want_v4: bool, want_v6: bool) -> PublicAddressSet:
        """
        Resolve the current public IP addresses.

        Parameters
        ----------
        want_v4 : bool
            Whether to look up the IPv4 address.
        want_v6 : bool
            Whether to look up the IPv6 address.

        Returns
        -------
        PublicAddressSet
            The resolved addresses; families that failed are left empty.

        Raises
        ------
        ResolutionError
            If none of the requested families could be resolved.
        """
        ...


def build_resolver(nameservers: Sequence[str], timeout: float) -> dns.resolver.Resolver:
    """
    Build a resolver that only talks to the given nameservers.

    The resolver is not configured from the system (no `/etc/resolv.conf`,
    no hosts file).

    Parameters
    ----------
    nameservers : Sequence[str]
        Nameserver IP addresses.
    timeout : float
        Lifetime of a query in seconds.

    Returns
    -------
    dns.resolver.Resolver
        The resolver.
    """
    resolver = dns.resolver.Resolver(configure=False)
    resolver.nameservers = list(nameservers)
    resolver.timeout = timeout
    resolver.lifetime = timeout
    resolver.retry_servfail = False
    resolver.cache = None
    return resolver


class DnsIpResolver(PublicIpResolver):
    """
    Resolve public IP addresses through OpenDNS.

    Parameters
    ----------
    timeout : float, optional
        Lifetime of each family lookup in seconds.
    resolver_factory : Callable | None, optional
        Factory building a resolver from nameservers and a timeout
        (used by tests).
    """

    def __init__(
        self,
        timeout: float = DNS_TIMEOUT,
        resolver_factory: Callable[[Sequence[str], float], dns.resolver.Resolver] | None = None,
    ) -> None:
        self._timeout = timeout
        self._resolver_factory = resolver_factory or build_resolver

    def fetch(self, want_v4: bool, want_v6: bool) -> PublicAddressSet:
        """Resolve the requested public IP address families."""
        logger.info("Fetching public IP using OpenDNS, IPv4: %s, IPv6: %s", want_v4, want_v6)

        ipv4: IPv4Address | None = None
        ipv6: IPv6Address | None = None
        errors: list[str] = []

        if want_v4:
            try:
                address = self._lookup("A", OPEN_DNS_IPV4)
                ipv4 = IPv4Address(address) if address else None
            except (OSError, ValueError, dns.exception.DNSException) as e:
                logger.warning("Failed to resolve IPv4 public IP address: %s", e)
                errors.append(f"IPv4: {e}")

        if want_v6:
            try:
                address = self._lookup("AAAA", OPEN_DNS_IPV6)
                ipv6 = IPv6Address(address) if address else None
            except (OSError, ValueError, dns.exception.DNSException) as e:
                logger.warning("Failed to resolve IPv6 public IP address: %s", e)
                errors.append(f"IPv6: {e}")

        result = PublicAddressSet(ipv4=ipv4, ipv6=ipv6)
        if not result.has_any():
            detail = "; ".join(errors) if errors else "no addresses returned from DNS resolution"
            msg = f"Failed to find public IP address: {detail}"
            raise ResolutionError(msg)

        logger.info("Public IP addresses: %s", result)
        return result

    def _lookup(self, rdtype: str, nameservers: Sequence[str]) -> str | None:
        resolver = self._resolver_factory(nameservers, self._timeout)
        answer = resolver.resolve(MYIP_HOSTNAME, rdtype, search=False)
        for rdata in answer:
            return str(rdata.address)
        return None
