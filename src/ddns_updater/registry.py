"""
Provider registry.

Builds the list of DNS provider clients from the validated configuration.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ddns_updater.exceptions import ConfigurationError
from ddns_updater.models import ProviderType
from ddns_updater.providers.digitalocean import DigitalOceanProvider
from ddns_updater.providers.hetzner import HetznerProvider

if TYPE_CHECKING:
    from typing import Final

    import httpx
    from pydantic import SecretStr

    from ddns_updater.config import Config
    from ddns_updater.providers.base import BaseDNSProvider


logger = logging.getLogger(__name__)


# Provider classes by type
PROVIDER_CLASSES: Final[dict[ProviderType, type[BaseDNSProvider]]] = {
    ProviderType.DIGITALOCEAN: DigitalOceanProvider,
    ProviderType.HETZNER: HetznerProvider,
}


def create_provider(
    provider_type: ProviderType,
    token: SecretStr,
    transport: httpx.BaseTransport | None = None,
) -> BaseDNSProvider:
    """
    Create a provider client.

    Parameters
    ----------
    provider_type : ProviderType
        The provider type.
    token : SecretStr
        The provider API token.
    transport : httpx.BaseTransport | None, optional
        Custom HTTP transport (used by tests).

    Returns
    -------
    BaseDNSProvider
        The provider client.
    """
    return PROVIDER_CLASSES[provider_type](token, transport=transport)


def build_providers(
    config: Config,
    transport: httpx.BaseTransport | None = None,
) -> list[BaseDNSProvider]:
    """
    Build one provider client per configured provider.

    The deprecated `digital_ocean_token` option adds a DigitalOcean client
    unless a DigitalOcean entry is already listed in `providers`, in which
    case the explicit entry wins.

    Parameters
    ----------
    config : Config
        Validated application configuration (no duplicate provider types).
    transport : httpx.BaseTransport | None, optional
        Custom HTTP transport (used by tests).

    Returns
    -------
    list[BaseDNSProvider]
        The provider clients, in configuration order.

    Raises
    ------
    ConfigurationError
        If no provider is configured.
    """
    providers: list[BaseDNSProvider] = [
        create_provider(provider_config.provider, provider_config.token, transport)
        for provider_config in config.providers
    ]

    if config.digital_ocean_token is not None:
        logger.warning(
            "The 'digital_ocean_token' option is deprecated. "
            "Use a [[providers]] entry with provider = \"digitalocean\" instead.",
        )
        if any(p.provider_type == ProviderType.DIGITALOCEAN for p in providers):
            logger.warning(
                "Both 'digital_ocean_token' and a DigitalOcean [[providers]] entry are set. "
                "Using the [[providers]] entry.",
            )
        else:
            providers.append(
                create_provider(
                    ProviderType.DIGITALOCEAN,
                    config.digital_ocean_token,
                    transport,
                ),
            )

    if not providers:
        msg = "At least one DNS provider must be configured."
        raise ConfigurationError(msg)

    logger.debug("Configured DNS providers: %s", ", ".join(p.name for p in providers))
    return providers
