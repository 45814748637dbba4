"""
Configuration management for DDNS Updater.

This module handles loading and validating configuration from TOML files,
`DO_DYNDNS_*` environment variables and command-line arguments.
Configuration priority (high to low):
1. Command-line arguments
2. Environment variables
3. Configuration file
4. Default values

API tokens can be read from a file instead of being passed inline: the
first line of `token_file_path` (top level, `--token-file-path` or
`DO_DYNDNS_TOKEN_FILE_PATH`) becomes the DigitalOcean token, and a
`[[providers]]` entry may set `token_file` instead of `token`.

Domains can be configured in two modes. Advanced mode lists zones and their
records explicitly:

    [[domains]]
    name = "example.com"

    [[domains.records]]
    name = "home"
    type = "A"
    providers = ["hetzner"]

Simple mode updates a single `A` record using the top-level `domain_root`
key plus either `subdomain_to_update` or `update_domain_root = true`.
"""

from __future__ import annotations

import argparse
import copy
import logging
import os
import re
import sys
import tomllib
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_core import PydanticCustomError

from ddns_updater import __version__
from ddns_updater.logging_config import DATE_FORMAT, LOG_FORMAT
from ddns_updater.models import ProviderType

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any, Final, Self

# Configure basic logging for early startup messages.
# Messages logged while loading the configuration (before "setup_logging()" is
# called) go to stderr with the regular format.
logger_basic = logging.getLogger(__name__)
logger_basic.setLevel(logging.DEBUG)
handler = logging.StreamHandler()
formatter = logging.Formatter(
    fmt=LOG_FORMAT,
    datefmt=DATE_FORMAT,
)
handler.setFormatter(formatter)
logger_basic.addHandler(handler)
logger_basic.propagate = False


DEFAULT_UPDATE_INTERVAL: Final[timedelta] = timedelta(minutes=10)

# Seconds per humantime-style duration unit
_DURATION_UNITS: Final[dict[str, float]] = {
    "ns": 1e-9,
    "nsec": 1e-9,
    "us": 1e-6,
    "usec": 1e-6,
    "ms": 1e-3,
    "msec": 1e-3,
    "s": 1,
    "sec": 1,
    "secs": 1,
    "second": 1,
    "seconds": 1,
    "m": 60,
    "min": 60,
    "mins": 60,
    "minute": 60,
    "minutes": 60,
    "h": 3600,
    "hr": 3600,
    "hrs": 3600,
    "hour": 3600,
    "hours": 3600,
    "d": 86400,
    "day": 86400,
    "days": 86400,
    "w": 604800,
    "week": 604800,
    "weeks": 604800,
}

_DURATION_PART: Final[re.Pattern[str]] = re.compile(r"(\d+(?:\.\d+)?)\s*([a-z]+)")

# Prefix of environment variables overriding config keys
ENV_VAR_PREFIX: Final[str] = "DO_DYNDNS_"

# Top-level config keys that may be set from the environment
_ENV_KEYS: Final[tuple[str, ...]] = (
    "update_interval",
    "dry_run",
    "ipv4",
    "ipv6",
    "collect_stats",
    "domain_root",
    "subdomain_to_update",
    "update_domain_root",
    "digital_ocean_token",
    "token_file_path",
)

# Environment keys mapped into the [logging] table
_ENV_LOGGING_KEYS: Final[dict[str, str]] = {
    "log_level": "level",
    "log_file_enabled": "file_enabled",
    "log_file_path": "file_path",
}

_ENV_BOOL_KEYS: Final[frozenset[str]] = frozenset(
    {"dry_run", "ipv4", "ipv6", "collect_stats", "update_domain_root", "log_file_enabled"},
)

_TRUE_VALUES: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


class ConfigValidationError(Exception):
    """
    Exception raised when configuration validation fails.

    This exception is raised when the TOML configuration contains
    invalid types or values.

    Attributes
    ----------
    message : str
        Human-readable error message describing the validation failures.
    config_path : Path | None
        Path to the configuration file that failed validation.
    """

    def __init__(self, message: str, config_path: Path | None = None) -> None:
        """
        Initialize ConfigValidationError.

        Parameters
        ----------
        message : str
            Human-readable error message.
        config_path : Path | None, optional
            Path to the configuration file.
        """
        self.config_path = config_path
        super().__init__(message)


def parse_duration(value: str) -> timedelta:
    """
    Parse a humantime-style duration such as "10m", "1h 30m" or "45s".

    A bare number is read as seconds.

    Parameters
    ----------
    value : str
        The duration string.

    Returns
    -------
    timedelta
        The parsed duration.

    Raises
    ------
    ValueError
        If the string is not a valid duration.
    """
    text = value.strip().lower()
    if not text:
        msg = "empty duration"
        raise ValueError(msg)
    try:
        return timedelta(seconds=float(text))
    except ValueError:
        pass

    total = 0.0
    position = 0
    for match in _DURATION_PART.finditer(text):
        if text[position : match.start()].strip():
            msg = f'invalid duration "{value}"'
            raise ValueError(msg)
        number, unit = match.groups()
        if unit not in _DURATION_UNITS:
            msg = f'unknown time unit "{unit}" in duration "{value}"'
            raise ValueError(msg)
        total += float(number) * _DURATION_UNITS[unit]
        position = match.end()
    if position == 0 or text[position:].strip():
        msg = f'invalid duration "{value}"'
        raise ValueError(msg)
    return timedelta(seconds=total)


def format_duration(value: timedelta) -> str:
    """
    Format a duration in humantime style (e.g., "1h 30m").

    Parameters
    ----------
    value : timedelta
        The duration.

    Returns
    -------
    str
        The formatted duration.
    """
    seconds = int(value.total_seconds())
    parts: list[str] = []
    for unit, size in (("d", 86400), ("h", 3600), ("m", 60), ("s", 1)):
        amount, seconds = divmod(seconds, size)
        if amount:
            parts.append(f"{amount}{unit}")
    return " ".join(parts) or "0s"


def read_token_file(path: str | Path) -> str:
    """
    Read an API token from the first line of a file.

    Parameters
    ----------
    path : str | Path
        Path to the token file.

    Returns
    -------
    str
        The token, stripped of surrounding whitespace.

    Raises
    ------
    ValueError
        If the file cannot be read or its first line is empty.
    """
    token_path = Path(path).expanduser()
    try:
        with token_path.open(encoding="utf-8") as f:
            token = f.readline().strip()
    except OSError as e:
        msg = f"Failed to read token file '{token_path}': {e.strerror or e}"
        raise ValueError(msg) from e
    if not token:
        msg = f"Token file '{token_path}' is empty"
        raise ValueError(msg)
    return token


# Configuration models (Pydantic with type validation and coercion)


class ProviderConfig(BaseModel):
    """
    DNS provider configuration.

    Attributes
    ----------
    provider : ProviderType
        The provider type.
    token : SecretStr
        The provider API token, given inline or read from `token_file`.
    """

    model_config = ConfigDict(frozen=True)

    provider: ProviderType
    token: SecretStr

    @model_validator(mode="before")
    @classmethod
    def read_token_from_file(cls, data: Any) -> Any:
        """Replace a `token_file` entry with the token it contains."""
        if not isinstance(data, dict) or "token_file" not in data:
            return data
        data = dict(data)
        token_file = data.pop("token_file")
        if "token" in data:
            raise PydanticCustomError(
                "providers_config_error",
                "Both 'token' and 'token_file' were set. Please provide only one option",
            )
        try:
            data["token"] = read_token_file(token_file)
        except (TypeError, ValueError) as e:
            raise PydanticCustomError("providers_config_error", "{error}", {"error": str(e)}) from e
        return data

    @field_validator("provider", mode="before")
    @classmethod
    def normalize_provider_name(cls, value: Any) -> Any:
        """Accept "digital_ocean" and mixed case spellings."""
        if isinstance(value, str):
            return value.strip().lower().replace("_", "")
        return value


class RecordConfig(BaseModel):
    """
    Domain record configuration.

    Attributes
    ----------
    name : str
        The host record name (e.g., "home", "@").
    record_type : str
        The record type (e.g., "A", "AAAA").
    providers : list[ProviderType] | None
        Providers to update this record on. None means all configured
        providers, an empty list means none.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., min_length=1)
    record_type: str = Field(..., alias="type", min_length=1)
    providers: list[ProviderType] | None = None

    @field_validator("record_type")
    @classmethod
    def uppercase_record_type(cls, value: str) -> str:
        """Normalize the record type to upper case."""
        return value.strip().upper()


class DomainConfig(BaseModel):
    """
    Domain (zone) configuration.

    Attributes
    ----------
    name : str
        The DNS zone (root domain name).
    records : list[RecordConfig]
        Records of the zone to keep updated.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    records: list[RecordConfig] = []


class LoggingConfig(BaseModel):
    """
    Logging configuration.

    Attributes
    ----------
    level : str
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    file_enabled : bool
        Whether to log to file.
    file_path : str
        Path to the log file.
    """

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    file_enabled: bool = False
    file_path: str = "/var/log/ddns-updater.log"

    @property
    def file_path_as_path(self) -> Path:
        """
        Get the log file path as a Path object.

        Returns
        -------
        Path
            The resolved log file path.
        """
        return Path(self.file_path)


class Config(BaseModel):
    """
    Application configuration.

    Attributes
    ----------
    update_interval : timedelta
        Time between update cycles.
    digital_ocean_token : SecretStr | None
        Deprecated single DigitalOcean token; prefer a `[[providers]]` entry.
    providers : list[ProviderConfig]
        Configured DNS providers (one per type).
    dry_run : bool
        Run the update logic without changing any record.
    ipv4 : bool
        Whether to resolve and update IPv4 addresses.
    ipv6 : bool
        Whether to resolve and update IPv6 addresses.
    collect_stats : bool
        Whether to collect update statistics.
    update_all_providers_by_default : bool
        Whether records without a `providers` list are updated on every
        configured provider.
    domains : list[DomainConfig]
        Zones and records to keep updated.
    logging : LoggingConfig
        Logging configuration.
    """

    model_config = ConfigDict(frozen=True)

    update_interval: timedelta = DEFAULT_UPDATE_INTERVAL
    digital_ocean_token: SecretStr | None = None
    providers: list[ProviderConfig] = []
    dry_run: bool = False
    ipv4: bool = True
    ipv6: bool = False
    collect_stats: bool = False
    update_all_providers_by_default: bool = True
    domains: list[DomainConfig] = []
    logging: LoggingConfig = LoggingConfig()

    @model_validator(mode="before")
    @classmethod
    def build_simple_mode_domains(cls, data: Any) -> Any:
        """
        Translate simple mode keys into a single-domain configuration.

        Returns
        -------
        Any
            The input data with simple mode keys replaced by `domains`.

        Raises
        ------
        PydanticCustomError
            If simple mode keys are inconsistent or mixed with `domains`.
        """
        if not isinstance(data, dict):
            return data
        simple_keys = ("domain_root", "subdomain_to_update", "update_domain_root")
        if not any(key in data for key in simple_keys):
            return data

        data = dict(data)
        domain_root = data.pop("domain_root", None)
        subdomain = data.pop("subdomain_to_update", None)
        update_root = data.pop("update_domain_root", None)

        err_type = "domains_config_error"
        if data.get("domains"):
            raise PydanticCustomError(
                err_type,
                "Both simple and advanced config modes settings were specified. "
                "Please use only one mode",
            )
        if not domain_root:
            raise PydanticCustomError(err_type, "Simple mode requires 'domain_root'")
        if subdomain is not None and update_root is not None:
            raise PydanticCustomError(
                err_type,
                "Both 'subdomain_to_update' and 'update_domain_root' options were set. "
                "Please provide only one option",
            )
        if subdomain is not None:
            hostname_part = subdomain
        elif update_root:
            hostname_part = "@"
        else:
            raise PydanticCustomError(
                err_type,
                "Neither 'subdomain_to_update' nor 'update_domain_root' options were set. "
                "Please provide one",
            )

        data["domains"] = [
            {"name": domain_root, "records": [{"name": hostname_part, "type": "A"}]},
        ]
        return data

    @field_validator("update_interval", mode="before")
    @classmethod
    def parse_update_interval(cls, value: Any) -> Any:
        """Accept humantime-style strings and plain seconds."""
        if isinstance(value, str):
            try:
                return parse_duration(value)
            except ValueError as e:
                raise PydanticCustomError("duration_parsing", str(e)) from e
        if isinstance(value, int | float) and not isinstance(value, bool):
            return timedelta(seconds=value)
        return value

    @field_validator("update_interval")
    @classmethod
    def check_positive_interval(cls, value: timedelta) -> timedelta:
        """Reject zero and negative update intervals."""
        if value.total_seconds() <= 0:
            raise PydanticCustomError(
                "duration_parsing",
                "Update interval must be positive",
            )
        return value

    @model_validator(mode="after")
    def check_general_options(self) -> Self:
        """
        Validate cross-field constraints.

        Returns
        -------
        Self
            The validated model.

        Raises
        ------
        PydanticCustomError
            If both IP families are disabled, a provider type is configured
            twice, or no record is configured.
        """
        if not self.ipv4 and not self.ipv6:
            raise PydanticCustomError(
                "ip_family_config_error",
                "At least one kind of ip family support needs to be enabled, both are disabled",
            )

        seen: set[ProviderType] = set()
        for provider_config in self.providers:
            if provider_config.provider in seen:
                raise PydanticCustomError(
                    "providers_config_error",
                    "Duplicate provider type '{provider}' found. "
                    "Each provider type can only be configured once",
                    {"provider": provider_config.provider.value},
                )
            seen.add(provider_config.provider)

        if not any(domain.records for domain in self.domains):
            raise PydanticCustomError(
                "domains_config_error",
                "No domain records configured. Set 'domain_root' with "
                "'subdomain_to_update' or add [[domains]] entries",
            )
        return self

    def secret_values(self) -> list[str]:
        """Return the configured API tokens in clear text, for log masking."""
        tokens = [p.token for p in self.providers]
        if self.digital_ocean_token is not None:
            tokens.append(self.digital_ocean_token)
        return [token.get_secret_value() for token in tokens]


def _format_validation_errors(
    error: ValidationError,
    config_path: Path | None,
) -> str:
    """
    Format Pydantic validation errors into human-readable messages.

    Parameters
    ----------
    error : ValidationError
        Pydantic validation error.
    config_path : Path | None
        Path to the configuration file.

    Returns
    -------
    str
        Human-readable error message.
    """
    lines: list[str] = []

    if config_path:
        lines.append(f'Configuration error in "{config_path}":')
    else:
        lines.append("Configuration error:")

    for err in error.errors():
        # Build field path (e.g., "domains.0.records.1.type")
        field_path = ".".join(str(loc) for loc in err["loc"]) or "config"

        error_type = err["type"]
        error_input = err["input"]
        input_type = type(error_input).__name__

        if error_type.endswith("_config_error") or error_type == "duration_parsing":
            lines.append(f"  [{field_path}]: {err['msg']}.")
            continue

        # Never echo secrets back
        if any(str(loc).endswith("token") for loc in err["loc"]):
            value_repr = "******"
        elif isinstance(error_input, str):
            value_repr = f'"{error_input}"'
        else:
            value_repr = repr(_mask_secrets(error_input))

        expected_type = _get_expected_type(error_type)
        lines.append(
            f"  [{field_path}]: Expected {expected_type}, got {input_type} "
            f"(value: {value_repr}). {err['msg']}.",
        )

    return "\n".join(lines)


def _mask_secrets(value: Any) -> Any:
    """Return a copy of `value` with every `*token` mapping entry masked."""
    if isinstance(value, dict):
        return {
            key: "******" if str(key).endswith("token") else _mask_secrets(item)
            for key, item in value.items()
        }
    if isinstance(value, list | tuple):
        return [_mask_secrets(item) for item in value]
    return value


def _get_expected_type(error_type: str) -> str:
    """
    Get human-readable expected type from Pydantic error type.

    Parameters
    ----------
    error_type : str
        Pydantic error type string.

    Returns
    -------
    str
        Human-readable type name.
    """
    type_mapping = {
        "int_type": "int",
        "int_parsing": "int",
        "bool_type": "bool",
        "bool_parsing": "bool",
        "string_type": "str",
        "list_type": "list",
        "enum": "provider name",
        "missing": "value",
    }
    return type_mapping.get(error_type, error_type)


def dict_to_config(
    data: dict[str, Any],
    config_path: Path | None = None,
) -> Config:
    """
    Validate a configuration dictionary and convert it to a Config object.

    Parameters
    ----------
    data : dict[str, Any]
        Configuration dictionary.
    config_path : Path | None, optional
        Path to the configuration file (for error messages).

    Returns
    -------
    Config
        Configuration object.

    Raises
    ------
    ConfigValidationError
        If validation fails.
    """
    # Handle file_path expansion before Pydantic validation
    if "file_path" in data.get("logging", {}):
        data = copy.deepcopy(data)
        data["logging"]["file_path"] = str(
            Path(data["logging"]["file_path"]).expanduser(),
        )

    try:
        return Config.model_validate(data)
    except ValidationError as e:
        msg = _format_validation_errors(e, config_path)
        raise ConfigValidationError(msg, config_path) from e


def load_config_from_file(config_path: Path) -> dict[str, Any]:
    """
    Load configuration from a TOML file.

    Parameters
    ----------
    config_path : Path
        Path to the configuration file.

    Returns
    -------
    dict[str, Any]
        Parsed configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    tomllib.TOMLDecodeError
        If the configuration file is not valid TOML.
    """
    with config_path.open("rb") as f:
        return tomllib.load(f)


def merge_config(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Recursively merge two configuration dictionaries.

    Parameters
    ----------
    base : dict[str, Any]
        Base configuration.
    override : dict[str, Any]
        Override configuration (takes precedence).

    Returns
    -------
    dict[str, Any]
        Merged configuration.
    """
    # Use deep copy to avoid modifying the original base configuration
    result = copy.deepcopy(base)

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_config(result[key], value)
        else:
            result[key] = value
    return result


def env_var_name(key: str) -> str:
    """Return the environment variable overriding a config key."""
    return f"{ENV_VAR_PREFIX}{key.upper()}"


def load_env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """
    Collect configuration overrides from `DO_DYNDNS_*` environment variables.

    Empty variables are ignored. Boolean keys accept true/false, yes/no,
    on/off and 1/0.

    Parameters
    ----------
    environ : Mapping[str, str]
        The process environment.

    Returns
    -------
    dict[str, Any]
        Overrides in the same shape as the configuration file.

    Raises
    ------
    ConfigValidationError
        If a boolean variable has an unrecognized value.
    """
    overrides: dict[str, Any] = {}
    for key in (*_ENV_KEYS, *_ENV_LOGGING_KEYS):
        name = env_var_name(key)
        raw = environ.get(name, "").strip()
        if not raw:
            continue

        value: Any = raw
        if key in _ENV_BOOL_KEYS:
            lowered = raw.lower()
            if lowered in _TRUE_VALUES:
                value = True
            elif lowered in _FALSE_VALUES:
                value = False
            else:
                msg = f"Configuration error:\n  [{name}]: Expected bool, got \"{raw}\"."
                raise ConfigValidationError(msg)

        logger_basic.debug("Using %s from environment", name)
        if key in _ENV_LOGGING_KEYS:
            overrides.setdefault("logging", {})[_ENV_LOGGING_KEYS[key]] = value
        else:
            overrides[key] = value
    return overrides


def resolve_token_file_path(
    layer: dict[str, Any],
    source: str,
    config_path: Path | None = None,
) -> dict[str, Any]:
    """
    Replace a layer's `token_file_path` with the token read from that file.

    Each configuration layer is resolved on its own before merging, so a
    token file given on the command line still outranks an inline token in
    the environment or the configuration file.

    Parameters
    ----------
    layer : dict[str, Any]
        One configuration layer (file, environment or command line).
    source : str
        Name of the layer, used in error messages.
    config_path : Path | None, optional
        Path to the configuration file, for error messages.

    Returns
    -------
    dict[str, Any]
        The layer with `digital_ocean_token` set from the file.

    Raises
    ------
    ConfigValidationError
        If the layer also sets `digital_ocean_token` or the file is unusable.
    """
    if "token_file_path" not in layer:
        return layer

    layer = dict(layer)
    token_file_path = layer.pop("token_file_path")
    if "digital_ocean_token" in layer:
        msg = (
            f"Configuration error:\n  [{source}]: Both 'digital_ocean_token' and "
            "'token_file_path' were set. Please provide only one option."
        )
        raise ConfigValidationError(msg, config_path)
    try:
        layer["digital_ocean_token"] = read_token_file(token_file_path)
    except (TypeError, ValueError) as e:
        msg = f"Configuration error:\n  [{source}]: {e}."
        raise ConfigValidationError(msg, config_path) from e
    return layer


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Parameters
    ----------
    args : list[str] | None, optional
        Command-line arguments. If None, uses sys.argv.

    Returns
    -------
    argparse.Namespace
        Parsed arguments.
    """
    parser = argparse.ArgumentParser(
        prog="ddns-updater",
        description="DDNS Updater - keep DNS records pointed at this host's public IP",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Config arguments
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.toml)",
    )

    # Updater arguments
    parser.add_argument(
        "--update-interval",
        type=str,
        dest="update_interval",
        default=None,
        help='Time between updates (e.g. "10m", "1h 30m")',
    )
    dry_run_group = parser.add_mutually_exclusive_group()
    dry_run_group.add_argument(
        "--dry-run",
        action="store_true",
        dest="dry_run",
        default=None,
        help="Run the update logic without changing any record",
    )
    dry_run_group.add_argument(
        "--no-dry-run",
        action="store_false",
        dest="dry_run",
        default=None,
        help="Change records (default)",
    )
    ipv4_group = parser.add_mutually_exclusive_group()
    ipv4_group.add_argument(
        "--ipv4",
        action="store_true",
        dest="ipv4",
        default=None,
        help="Enable IPv4 updates (default)",
    )
    ipv4_group.add_argument(
        "--no-ipv4",
        action="store_false",
        dest="ipv4",
        default=None,
        help="Disable IPv4 updates",
    )
    ipv6_group = parser.add_mutually_exclusive_group()
    ipv6_group.add_argument(
        "--ipv6",
        action="store_true",
        dest="ipv6",
        default=None,
        help="Enable IPv6 updates",
    )
    ipv6_group.add_argument(
        "--no-ipv6",
        action="store_false",
        dest="ipv6",
        default=None,
        help="Disable IPv6 updates (default)",
    )
    parser.add_argument(
        "--collect-stats",
        action="store_true",
        dest="collect_stats",
        default=None,
        help="Collect update statistics",
    )

    # Simple mode domain arguments
    parser.add_argument(
        "--domain-root",
        type=str,
        dest="domain_root",
        default=None,
        help='Domain root to update (e.g. "example.com")',
    )
    simple_mode_group = parser.add_mutually_exclusive_group()
    simple_mode_group.add_argument(
        "--subdomain-to-update",
        type=str,
        dest="subdomain_to_update",
        default=None,
        help='Subdomain to update (e.g. "home")',
    )
    simple_mode_group.add_argument(
        "--update-domain-root",
        action="store_true",
        dest="update_domain_root",
        default=None,
        help="Update the domain root record",
    )
    token_group = parser.add_mutually_exclusive_group()
    token_group.add_argument(
        "--digital-ocean-token",
        type=str,
        dest="digital_ocean_token",
        default=None,
        help="DigitalOcean API token (deprecated, use [[providers]] instead)",
    )
    token_group.add_argument(
        "-p",
        "--token-file-path",
        type=Path,
        dest="token_file_path",
        default=None,
        help="Path to a file containing the DigitalOcean API token on its first line",
    )

    # Logging arguments
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Log level",
    )
    parser.add_argument(
        "-v",
        action="count",
        dest="verbosity",
        default=0,
        help="Increase log verbosity (same as --log-level DEBUG)",
    )
    log_file_group = parser.add_mutually_exclusive_group()
    log_file_group.add_argument(
        "--log-file-enabled",
        action="store_true",
        dest="log_file_enabled",
        default=None,
        help="Enable logging to file",
    )
    log_file_group.add_argument(
        "--log-file-disabled",
        action="store_false",
        dest="log_file_enabled",
        default=None,
        help="Disable logging to file",
    )
    parser.add_argument(
        "--log-file-path",
        type=Path,
        dest="log_file_path",
        default=None,
        help="Path to the log file",
    )

    return parser.parse_args(args)


def load_config(
    args: argparse.Namespace | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """
    Load configuration from file, environment and command-line arguments.

    Priority (high to low):
    1. Command-line arguments
    2. `DO_DYNDNS_*` environment variables
    3. Configuration file
    4. Default values

    The configuration file is `--config`, else `DO_DYNDNS_CONFIG`, else
    `config.toml` in the working directory if it exists.

    Parameters
    ----------
    args : argparse.Namespace | None, optional
        Parsed command-line arguments.
    environ : Mapping[str, str] | None, optional
        Environment to read overrides from. Defaults to `os.environ`.

    Returns
    -------
    Config
        Loaded configuration.

    Raises
    ------
    ConfigValidationError
        If the merged configuration is invalid.
    """
    if args is None:
        args = parse_args()
    if environ is None:
        environ = os.environ

    # Start with empty config dict
    config_dict: dict[str, Any] = {}

    # Load from config file if specified or if default exists
    config_path = args.config
    if config_path is None and environ.get(env_var_name("config")):
        config_path = Path(environ[env_var_name("config")])
    if config_path is not None:
        config_path = config_path.expanduser()
    if config_path is None:
        default_config = Path("config.toml")
        if default_config.exists():
            config_path = default_config

    if config_path is not None:
        if config_path.exists():
            logger_basic.info('Loading configuration from "%s".', config_path)
            try:
                config_dict = load_config_from_file(config_path)
            except tomllib.TOMLDecodeError as e:
                logger_basic.critical('Failed to parse configuration file: "%s".', e)
                sys.exit(1)
        else:
            logger_basic.critical("Configuration file not found: %s", config_path)
            sys.exit(1)

    config_dict = resolve_token_file_path(config_dict, "token_file_path", config_path)

    # Apply environment overrides
    env_overrides = resolve_token_file_path(
        load_env_overrides(environ),
        env_var_name("token_file_path"),
        config_path,
    )
    if env_overrides:
        config_dict = merge_config(config_dict, env_overrides)

    # Apply command-line overrides
    cli_overrides: dict[str, Any] = {}

    for key in _ENV_KEYS:
        value = getattr(args, key)
        if value is not None:
            cli_overrides[key] = value

    # Logging overrides
    if args.log_level is not None:
        cli_overrides.setdefault("logging", {})["level"] = args.log_level
    elif args.verbosity:
        cli_overrides.setdefault("logging", {})["level"] = "DEBUG"
    if args.log_file_enabled is not None:
        cli_overrides.setdefault("logging", {})["file_enabled"] = args.log_file_enabled
    if args.log_file_path is not None:
        cli_overrides.setdefault("logging", {})["file_path"] = str(args.log_file_path)

    cli_overrides = resolve_token_file_path(cli_overrides, "--token-file-path", config_path)
    if cli_overrides:
        config_dict = merge_config(config_dict, cli_overrides)

    return dict_to_config(config_dict, config_path)
