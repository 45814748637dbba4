"""
Base class for DNS providers.

This module defines the abstract base class that all DNS provider
implementations must inherit from, plus the HTTP plumbing they share:
bearer authentication, transport error mapping and JSON decoding.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import httpx
from pydantic import SecretStr
from starlette import status as st_status

from ddns_updater.exceptions import (
    ProviderAuthError,
    ProviderProtocolError,
    ProviderTransportError,
)

if TYPE_CHECKING:
    from ipaddress import IPv4Address, IPv6Address
    from typing import Any, Final

    from ddns_updater.models import (
        DomainRecordTarget,
        ProviderType,
        RecordSet,
    )


# HTTP timeout in seconds
HTTP_TIMEOUT: Final[float] = 30.0


logger = logging.getLogger(__name__)


class BaseDNSProvider(ABC):
    """
    Abstract base class for DNS providers.

    A provider client is created once at startup and used by the updater
    for the lifetime of the process. Subclasses implement `list_records`
    and `update_record` on top of `_request`.

    Parameters
    ----------
    token : SecretStr | str
        The provider API token.
    transport : httpx.BaseTransport | None, optional
        Custom HTTP transport (used by tests).
    """

    def __init__(
        self,
        token: SecretStr | str,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._token = token if isinstance(token, SecretStr) else SecretStr(token)
        self._client = httpx.Client(timeout=HTTP_TIMEOUT, transport=transport)

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Get the human-readable provider name.

        Returns
        -------
        str
            Provider name used in log messages.
        """
        ...

    @property
    @abstractmethod
    def provider_type(self) -> ProviderType:
        """
        Get the provider type.

        Returns
        -------
        ProviderType
            Provider type identifier.
        """
        ...

    @abstractmethod
    def list_records(self, domain_name: str) -> RecordSet:
        """
        Fetch all records of a zone.

        Record names are normalized to the hostname part relative to the
        zone, with "@" for the zone apex.

        Parameters
        ----------
        domain_name : str
            The DNS zone (root domain name).

        Returns
        -------
        RecordSet
            The normalized records.

        Raises
        ------
        ZoneNotFoundError
            If the provider does not manage the zone.
        ProviderError
            If the request fails or the response cannot be parsed.
        """
        ...

    @abstractmethod
    def update_record(
        self,
        record_id: str,
        target: DomainRecordTarget,
        new_ip: IPv4Address | IPv6Address,
    ) -> None:
        """
        Point an existing record at a new IP address.

        The provider must report the same IP it was asked to set, otherwise
        the update is considered failed even if the request succeeded.

        Parameters
        ----------
        record_id : str
            Provider-native record identifier.
        target : DomainRecordTarget
            The configured record being updated.
        new_ip : IPv4Address | IPv6Address
            The IP address to set.

        Raises
        ------
        RecordNotFoundError
            If the record no longer exists.
        VerificationError
            If the provider reports a different IP after the update.
        ProviderError
            If the request fails.
        """
        ...

    def identity(self) -> tuple[str, ProviderType]:
        """Get the provider name and type."""
        return self.name, self.provider_type

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def build_fqdn(self, zone: str, record: str) -> str:
        """
        Build the fully qualified domain name.

        Parameters
        ----------
        zone : str
            The DNS zone (root domain).
        record : str
            The host record name.

        Returns
        -------
        str
            The FQDN.
        """
        if record in {"@", ""}:
            return zone
        return f"{record}.{zone}"

    @staticmethod
    def normalize_hostname(name: str, zone: str) -> str:
        """
        Normalize a provider record name to the hostname part.

        Parameters
        ----------
        name : str
            Record name as returned by the provider ("home", "@",
            "home.example.com", "example.com" or with a trailing dot).
        zone : str
            The DNS zone (root domain).

        Returns
        -------
        str
            The hostname part, or "@" for the zone apex.
        """
        name = name.rstrip(".")
        zone = zone.rstrip(".")
        if name in {"@", ""} or name == zone:
            return "@"
        suffix = f".{zone}"
        if name.endswith(suffix):
            return name[: -len(suffix)]
        return name

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token.get_secret_value()}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Send an authenticated request to the provider API.

        Parameters
        ----------
        method : str
            HTTP method.
        url : str
            Request URL.
        **kwargs : Any
            Extra arguments passed to `httpx.Client.request`.

        Returns
        -------
        httpx.Response
            The response (any status other than 401/403).

        Raises
        ------
        ProviderTransportError
            If the request could not be sent.
        ProviderAuthError
            If the provider rejected the API token.
        """
        try:
            response = self._client.request(
                method,
                url,
                headers=self._auth_headers(),
                **kwargs,
            )
        except httpx.RequestError as e:
            logger.error("[%s] Network request failed: '%s'", self.name, e)  # noqa: TRY400
            msg = f"{method} request to {self.name} API failed: {e}"
            raise ProviderTransportError(self.name, msg) from e

        logger.debug("[%s] %s %s -> %d", self.name, method, url, response.status_code)

        if response.status_code in {
            st_status.HTTP_401_UNAUTHORIZED,
            st_status.HTTP_403_FORBIDDEN,
        }:
            msg = f"{self.name} API rejected the configured token (HTTP {response.status_code})"
            raise ProviderAuthError(self.name, msg)

        return response

    def _json(self, response: httpx.Response) -> dict[str, Any]:
        """
        Decode a JSON object response body.

        Raises
        ------
        ProviderProtocolError
            If the body is not a JSON object.
        """
        try:
            data = response.json()
        except ValueError as e:
            msg = f"Failed to parse {self.name} API response as JSON: '{response.text}'"
            raise ProviderProtocolError(self.name, msg) from e
        if not isinstance(data, dict):
            msg = f"Unexpected {self.name} API response: '{response.text}'"
            raise ProviderProtocolError(self.name, msg)
        logger.debug("[%s] Response: %s", self.name, response.text)
        return data

    def _lookup(self, data: dict[str, Any], *path: str) -> Any:
        """
        Follow a key path through nested JSON objects.

        A missing key anywhere on the path yields None. A present key whose
        value is not an object, while more keys remain, is a protocol error.

        Parameters
        ----------
        data : dict[str, Any]
            The decoded response body.
        *path : str
            Keys to follow, outermost first.

        Returns
        -------
        Any
            The value at the end of the path, or None.

        Raises
        ------
        ProviderProtocolError
            If an intermediate value is not a JSON object.
        """
        value: Any = data
        for depth, key in enumerate(path):
            if not isinstance(value, dict):
                where = ".".join(path[:depth])
                msg = f"Expected an object at '{where}' in {self.name} response, got {value!r}"
                raise ProviderProtocolError(self.name, msg)
            if key not in value:
                return None
            value = value[key]
        return value

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
