"""
Exception hierarchy for DDNS Updater.

Errors are grouped by how the updater reacts to them:

- transient network errors are retried on the next cycle,
- provider errors fail a single provider for the current cycle,
- configuration errors point at a misconfigured record or zone,
- verification errors mean a provider accepted a write but did not apply it.
"""

from __future__ import annotations


class DDNSError(Exception):
    """Base class for all DDNS Updater errors."""


class ResolutionError(DDNSError):
    """Raised when none of the requested public IP address families resolve."""


class ProviderError(DDNSError):
    """
    Base class for errors raised by a DNS provider client.

    Attributes
    ----------
    provider : str
        Human-readable provider name.
    """

    def __init__(self, provider: str, message: str) -> None:
        """
        Initialize ProviderError.

        Parameters
        ----------
        provider : str
            Human-readable provider name.
        message : str
            Human-readable error message.
        """
        self.provider = provider
        super().__init__(message)


class ProviderTransportError(ProviderError):
    """Raised when a provider API request fails at the network level."""


class ProviderAuthError(ProviderError):
    """Raised when a provider rejects the configured API token."""


class ProviderProtocolError(ProviderError):
    """Raised when a provider response cannot be parsed."""


class ProviderAPIError(ProviderError):
    """
    Raised when a provider API returns an error response.

    Attributes
    ----------
    code : str | None
        Provider-specific error code.
    status_code : int | None
        HTTP status code of the response.
    """

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
    ) -> None:
        """
        Initialize ProviderAPIError.

        Parameters
        ----------
        provider : str
            Human-readable provider name.
        message : str
            Human-readable error message.
        code : str | None, optional
            Provider-specific error code.
        status_code : int | None, optional
            HTTP status code of the response.
        """
        self.code = code
        self.status_code = status_code
        super().__init__(provider, message)


class VerificationError(ProviderError):
    """Raised when a provider accepted an update but reports a different IP."""


class ConfigurationError(DDNSError):
    """Raised when the configured records or providers cannot be used."""


class ZoneNotFoundError(ConfigurationError):
    """Raised when a provider does not manage the requested zone."""


class RecordNotFoundError(ConfigurationError):
    """Raised when a configured record does not exist at the provider."""


class NoEligibleProviderError(ConfigurationError):
    """Raised when a record's provider scope leaves no provider to update."""


class InvalidRecordValueError(ConfigurationError):
    """Raised when an existing record does not hold a valid IP address."""


class CircuitBreakerError(DDNSError):
    """Raised when the updater stops after too many failed update cycles."""
