"""Tests for configuration module."""

from __future__ import annotations

import tempfile
from datetime import timedelta
from pathlib import Path

import pytest

from ddns_updater.config import (
    Config,
    ConfigValidationError,
    LoggingConfig,
    ProviderConfig,
    RecordConfig,
    dict_to_config,
    format_duration,
    load_config,
    load_config_from_file,
    load_env_overrides,
    merge_config,
    parse_args,
    parse_duration,
    read_token_file,
)
from ddns_updater.models import ProviderType

MINIMAL_DOMAINS = [{"name": "example.com", "records": [{"name": "home", "type": "A"}]}]


class TestParseDuration:
    """Tests for parse_duration function."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("10m", timedelta(minutes=10)),
            ("1h 30m", timedelta(hours=1, minutes=30)),
            ("45s", timedelta(seconds=45)),
            ("2min", timedelta(minutes=2)),
            ("1d", timedelta(days=1)),
            ("90", timedelta(seconds=90)),
            ("1.5h", timedelta(minutes=90)),
        ],
    )
    def test_valid_durations(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "abc", "10x", "m10", "10m garbage"])
    def test_invalid_durations(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)

    def test_format_duration(self):
        assert format_duration(timedelta(minutes=10)) == "10m"
        assert format_duration(timedelta(hours=1, minutes=30, seconds=5)) == "1h 30m 5s"
        assert format_duration(timedelta(0)) == "0s"


class TestProviderConfig:
    """Tests for ProviderConfig."""

    @pytest.mark.parametrize("name", ["digitalocean", "DigitalOcean", "digital_ocean"])
    def test_provider_name_normalized(self, name):
        config = ProviderConfig(provider=name, token="secret")
        assert config.provider == ProviderType.DIGITALOCEAN

    def test_token_hidden_in_repr(self):
        config = ProviderConfig(provider="hetzner", token="very-secret")
        assert "very-secret" not in repr(config)
        assert config.token.get_secret_value() == "very-secret"


class TestRecordConfig:
    """Tests for RecordConfig."""

    def test_type_alias_and_uppercase(self):
        config = RecordConfig.model_validate({"name": "home", "type": "aaaa"})
        assert config.record_type == "AAAA"
        assert config.providers is None

    def test_empty_provider_list_kept(self):
        config = RecordConfig.model_validate({"name": "home", "type": "A", "providers": []})
        assert config.providers == []


class TestLoggingConfig:
    """Tests for LoggingConfig."""

    def test_default_values(self):
        config = LoggingConfig()
        assert config.level == "INFO"
        assert config.file_enabled is False
        assert config.file_path == "/var/log/ddns-updater.log"


class TestMergeConfig:
    """Tests for merge_config function."""

    def test_simple_merge(self):
        base = {"a": 1, "b": 2}
        override = {"b": 3, "c": 4}
        result = merge_config(base, override)
        assert result == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self):
        base = {"logging": {"level": "INFO", "file_enabled": False}}
        override = {"logging": {"level": "DEBUG"}}
        result = merge_config(base, override)
        assert result == {"logging": {"level": "DEBUG", "file_enabled": False}}


class TestDictToConfig:
    """Tests for dict_to_config function."""

    def test_defaults(self):
        config = dict_to_config({"domains": MINIMAL_DOMAINS})
        assert config.update_interval == timedelta(minutes=10)
        assert config.ipv4 is True
        assert config.ipv6 is False
        assert config.dry_run is False
        assert config.collect_stats is False
        assert config.update_all_providers_by_default is True
        assert config.providers == []
        assert config.digital_ocean_token is None

    def test_full_dict(self):
        data = {
            "update_interval": "5m",
            "dry_run": True,
            "ipv6": True,
            "providers": [
                {"provider": "digitalocean", "token": "do-token"},
                {"provider": "hetzner", "token": "hz-token"},
            ],
            "domains": [
                {
                    "name": "example.com",
                    "records": [
                        {"name": "home", "type": "A", "providers": ["hetzner"]},
                        {"name": "@", "type": "AAAA"},
                    ],
                },
            ],
            "logging": {"level": "DEBUG", "file_path": "/tmp/test.log"},
        }
        config = dict_to_config(data)
        assert config.update_interval == timedelta(minutes=5)
        assert config.dry_run is True
        assert [p.provider for p in config.providers] == [
            ProviderType.DIGITALOCEAN,
            ProviderType.HETZNER,
        ]
        records = config.domains[0].records
        assert records[0].providers == [ProviderType.HETZNER]
        assert records[1].record_type == "AAAA"
        assert config.logging.level == "DEBUG"

    def test_numeric_update_interval_is_seconds(self):
        config = dict_to_config({"update_interval": 30, "domains": MINIMAL_DOMAINS})
        assert config.update_interval == timedelta(seconds=30)

    def test_simple_mode_subdomain(self):
        config = dict_to_config(
            {"domain_root": "example.com", "subdomain_to_update": "home"},
        )
        assert len(config.domains) == 1
        assert config.domains[0].name == "example.com"
        record = config.domains[0].records[0]
        assert record.name == "home"
        assert record.record_type == "A"

    def test_simple_mode_domain_root(self):
        config = dict_to_config({"domain_root": "example.com", "update_domain_root": True})
        assert config.domains[0].records[0].name == "@"


class TestConfigValidation:
    """Tests for configuration validation."""

    def test_no_records(self):
        with pytest.raises(ConfigValidationError) as exc_info:
            dict_to_config({})
        assert "No domain records configured" in str(exc_info.value)

    def test_both_ip_families_disabled(self):
        with pytest.raises(ConfigValidationError) as exc_info:
            dict_to_config({"ipv4": False, "ipv6": False, "domains": MINIMAL_DOMAINS})
        assert "ip family" in str(exc_info.value)

    def test_duplicate_provider(self):
        data = {
            "providers": [
                {"provider": "hetzner", "token": "a"},
                {"provider": "Hetzner", "token": "b"},
            ],
            "domains": MINIMAL_DOMAINS,
        }
        with pytest.raises(ConfigValidationError) as exc_info:
            dict_to_config(data)
        assert "Duplicate provider type 'hetzner'" in str(exc_info.value)

    def test_unknown_provider(self):
        data = {
            "providers": [{"provider": "route53", "token": "a"}],
            "domains": MINIMAL_DOMAINS,
        }
        with pytest.raises(ConfigValidationError) as exc_info:
            dict_to_config(data)
        assert "providers.0.provider" in str(exc_info.value)

    def test_invalid_update_interval(self):
        with pytest.raises(ConfigValidationError) as exc_info:
            dict_to_config({"update_interval": "soon", "domains": MINIMAL_DOMAINS})
        assert "update_interval" in str(exc_info.value)

    def test_zero_update_interval(self):
        with pytest.raises(ConfigValidationError):
            dict_to_config({"update_interval": "0s", "domains": MINIMAL_DOMAINS})

    def test_simple_and_advanced_mode_mixed(self):
        data = {
            "domain_root": "example.com",
            "subdomain_to_update": "home",
            "domains": MINIMAL_DOMAINS,
        }
        with pytest.raises(ConfigValidationError) as exc_info:
            dict_to_config(data)
        assert "Both simple and advanced" in str(exc_info.value)

    def test_simple_mode_both_options(self):
        data = {
            "domain_root": "example.com",
            "subdomain_to_update": "home",
            "update_domain_root": True,
        }
        with pytest.raises(ConfigValidationError) as exc_info:
            dict_to_config(data)
        assert "provide only one option" in str(exc_info.value)

    def test_simple_mode_missing_option(self):
        with pytest.raises(ConfigValidationError) as exc_info:
            dict_to_config({"domain_root": "example.com"})
        assert "Neither" in str(exc_info.value)

    def test_invalid_bool_type(self):
        with pytest.raises(ConfigValidationError) as exc_info:
            dict_to_config({"dry_run": "maybe", "domains": MINIMAL_DOMAINS}, Path("config.toml"))
        error_msg = str(exc_info.value)
        assert "dry_run" in error_msg
        assert "bool" in error_msg
        assert "config.toml" in error_msg

    def test_token_not_echoed(self):
        data = {
            "providers": [{"provider": "hetzner", "token": 12345}],
            "domains": MINIMAL_DOMAINS,
        }
        with pytest.raises(ConfigValidationError) as exc_info:
            dict_to_config(data)
        error_msg = str(exc_info.value)
        assert "providers.0.token" in error_msg
        assert "12345" not in error_msg

    def test_token_masked_in_parent_input(self):
        data = {
            "providers": [{"token": "SUPERSECRET123"}],
            "digital_ocean_token": ["OTHERSECRET456"],
            "domains": MINIMAL_DOMAINS,
        }
        with pytest.raises(ConfigValidationError) as exc_info:
            dict_to_config(data)
        error_msg = str(exc_info.value)
        assert "providers.0.provider" in error_msg
        assert "******" in error_msg
        assert "SUPERSECRET123" not in error_msg
        assert "OTHERSECRET456" not in error_msg


class TestLoadConfigFromFile:
    """Tests for load_config_from_file function."""

    def test_load_toml_file(self):
        toml_content = """
update_interval = "2m"

[[providers]]
provider = "hetzner"
token = "hz-token"

[[domains]]
name = "example.com"

[[domains.records]]
name = "home"
type = "A"
providers = ["hetzner"]
"""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".toml", delete=False) as f:
            f.write(toml_content)
            f.flush()
            config_path = Path(f.name)

        try:
            data = load_config_from_file(config_path)
            assert data["update_interval"] == "2m"
            assert data["providers"][0]["provider"] == "hetzner"
            assert data["domains"][0]["records"][0]["providers"] == ["hetzner"]

            config = dict_to_config(data, config_path)
            assert isinstance(config, Config)
            assert config.update_interval == timedelta(minutes=2)
        finally:
            config_path.unlink()


class TestParseArgs:
    """Tests for parse_args function."""

    def test_default_args(self):
        args = parse_args([])
        assert args.config is None
        assert args.update_interval is None
        assert args.dry_run is None
        assert args.ipv4 is None
        assert args.ipv6 is None
        assert args.log_level is None
        assert args.verbosity == 0
        assert args.log_file_enabled is None
        assert args.log_file_path is None

    def test_config_path(self):
        args = parse_args(["--config", "/path/to/config.toml"])
        assert args.config == Path("/path/to/config.toml")

    def test_ip_family_flags(self):
        args = parse_args(["--no-ipv4", "--ipv6"])
        assert args.ipv4 is False
        assert args.ipv6 is True

    def test_dry_run(self):
        assert parse_args(["--dry-run"]).dry_run is True
        assert parse_args(["--no-dry-run"]).dry_run is False

    def test_simple_mode_options_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(["--subdomain-to-update", "home", "--update-domain-root"])

    def test_log_file_path(self):
        args = parse_args(["--log-file-path", "/custom/log.path"])
        assert isinstance(args.log_file_path, Path)
        assert args.log_file_path == Path("/custom/log.path")


class TestLoadConfigOverrides:
    """Tests for CLI overrides in load_config."""

    def test_simple_mode_from_cli(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        args = parse_args(
            [
                "--domain-root",
                "example.com",
                "--subdomain-to-update",
                "home",
                "--digital-ocean-token",
                "do-token",
                "--update-interval",
                "1h",
            ],
        )
        config = load_config(args)
        assert config.domains[0].records[0].name == "home"
        assert config.digital_ocean_token is not None
        assert config.digital_ocean_token.get_secret_value() == "do-token"
        assert config.update_interval == timedelta(hours=1)

    def test_cli_overrides_file(self, tmp_path):
        config_path = tmp_path / "config.toml"
        config_path.write_text(
            'dry_run = false\n\n[[domains]]\nname = "example.com"\n\n'
            '[[domains.records]]\nname = "home"\ntype = "A"\n',
        )
        args = parse_args(["--config", str(config_path), "--dry-run", "-v"])
        config = load_config(args)
        assert config.dry_run is True
        assert config.logging.level == "DEBUG"

    def test_logging_override(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        args = parse_args(
            [
                "--update-domain-root",
                "--domain-root",
                "example.com",
                "--log-file-enabled",
                "--log-file-path",
                "/tmp/cli.log",
            ],
        )
        config = load_config(args)
        assert config.logging.file_enabled is True
        assert config.logging.file_path == str(Path("/tmp/cli.log").expanduser())

    def test_missing_config_file_exits(self, tmp_path):
        args = parse_args(["--config", str(tmp_path / "missing.toml")])
        with pytest.raises(SystemExit):
            load_config(args)


class TestReadTokenFile:
    """Tests for read_token_file."""

    def test_first_line_stripped(self, tmp_path):
        token_file = tmp_path / "token"
        token_file.write_text("  do-token  \nsecond line\n")
        assert read_token_file(token_file) == "do-token"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValueError, match="Failed to read token file"):
            read_token_file(tmp_path / "missing")

    def test_empty_file(self, tmp_path):
        token_file = tmp_path / "token"
        token_file.write_text("\n")
        with pytest.raises(ValueError, match="is empty"):
            read_token_file(token_file)

    def test_provider_token_file(self, tmp_path):
        token_file = tmp_path / "hetzner.token"
        token_file.write_text("hz-from-file\n")
        config = ProviderConfig(provider="hetzner", token_file=str(token_file))
        assert config.token.get_secret_value() == "hz-from-file"

    def test_provider_token_and_token_file(self, tmp_path):
        token_file = tmp_path / "hetzner.token"
        token_file.write_text("hz-from-file\n")
        data = {
            "providers": [
                {"provider": "hetzner", "token": "inline", "token_file": str(token_file)},
            ],
            "domains": MINIMAL_DOMAINS,
        }
        with pytest.raises(ConfigValidationError, match="Both 'token' and 'token_file'"):
            dict_to_config(data)

    def test_provider_unreadable_token_file(self, tmp_path):
        data = {
            "providers": [{"provider": "hetzner", "token_file": str(tmp_path / "missing")}],
            "domains": MINIMAL_DOMAINS,
        }
        with pytest.raises(ConfigValidationError, match="Failed to read token file"):
            dict_to_config(data)


class TestLoadEnvOverrides:
    """Tests for DO_DYNDNS_* environment overrides."""

    def test_collects_prefixed_keys(self):
        overrides = load_env_overrides(
            {
                "DO_DYNDNS_UPDATE_INTERVAL": "2h 30m",
                "DO_DYNDNS_DRY_RUN": "yes",
                "DO_DYNDNS_IPV6": "0",
                "DO_DYNDNS_DOMAIN_ROOT": "example.com",
                "DO_DYNDNS_LOG_LEVEL": "DEBUG",
                "DO_DYNDNS_LOG_FILE_ENABLED": "true",
                "DO_DYNDNS_SUBDOMAIN_TO_UPDATE": "",
                "UPDATE_INTERVAL": "1s",
            },
        )
        assert overrides == {
            "update_interval": "2h 30m",
            "dry_run": True,
            "ipv6": False,
            "domain_root": "example.com",
            "logging": {"level": "DEBUG", "file_enabled": True},
        }

    def test_invalid_bool(self):
        with pytest.raises(ConfigValidationError) as exc_info:
            load_env_overrides({"DO_DYNDNS_UPDATE_DOMAIN_ROOT": "maybe"})
        assert "DO_DYNDNS_UPDATE_DOMAIN_ROOT" in str(exc_info.value)


class TestLoadConfigLayers:
    """Tests for the file < environment < command line precedence."""

    def write_config(self, tmp_path, body):
        config_path = tmp_path / "config.toml"
        config_path.write_text(
            body + '\n[[domains]]\nname = "example.com"\n\n'
            '[[domains.records]]\nname = "home"\ntype = "A"\n',
        )
        return config_path

    def test_env_overrides_file(self, tmp_path):
        config_path = self.write_config(tmp_path, 'update_interval = "1h"\ndry_run = false\n')
        args = parse_args(["--config", str(config_path)])
        config = load_config(
            args,
            {"DO_DYNDNS_UPDATE_INTERVAL": "5m", "DO_DYNDNS_DRY_RUN": "true"},
        )
        assert config.update_interval == timedelta(minutes=5)
        assert config.dry_run is True

    def test_cli_overrides_env(self, tmp_path):
        config_path = self.write_config(tmp_path, "")
        args = parse_args(["--config", str(config_path), "--update-interval", "30s"])
        config = load_config(args, {"DO_DYNDNS_UPDATE_INTERVAL": "5m"})
        assert config.update_interval == timedelta(seconds=30)

    def test_config_path_from_env(self, tmp_path, monkeypatch):
        config_dir = tmp_path / "etc"
        config_dir.mkdir()
        config_path = self.write_config(config_dir, "collect_stats = true\n")
        monkeypatch.chdir(tmp_path)
        config = load_config(parse_args([]), {"DO_DYNDNS_CONFIG": str(config_path)})
        assert config.collect_stats is True

    def test_simple_mode_from_env(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = load_config(
            parse_args([]),
            {
                "DO_DYNDNS_DOMAIN_ROOT": "example.com",
                "DO_DYNDNS_UPDATE_DOMAIN_ROOT": "true",
                "DO_DYNDNS_DIGITAL_OCEAN_TOKEN": "env-token",
            },
        )
        assert config.domains[0].records[0].name == "@"
        assert config.digital_ocean_token.get_secret_value() == "env-token"

    def test_token_file_from_cli(self, tmp_path):
        config_path = self.write_config(tmp_path, 'digital_ocean_token = "file-token"\n')
        token_file = tmp_path / "token"
        token_file.write_text("cli-file-token\n")
        args = parse_args(["--config", str(config_path), "-p", str(token_file)])
        config = load_config(args, {"DO_DYNDNS_DIGITAL_OCEAN_TOKEN": "env-token"})
        assert config.digital_ocean_token.get_secret_value() == "cli-file-token"

    def test_token_file_from_env(self, tmp_path):
        config_path = self.write_config(tmp_path, 'digital_ocean_token = "file-token"\n')
        token_file = tmp_path / "token"
        token_file.write_text("env-file-token\n")
        config = load_config(
            parse_args(["--config", str(config_path)]),
            {"DO_DYNDNS_TOKEN_FILE_PATH": str(token_file)},
        )
        assert config.digital_ocean_token.get_secret_value() == "env-file-token"

    def test_token_file_in_config_file(self, tmp_path):
        token_file = tmp_path / "token"
        token_file.write_text("from-token-file\n")
        config_path = self.write_config(tmp_path, f'token_file_path = "{token_file}"\n')
        config = load_config(parse_args(["--config", str(config_path)]), {})
        assert config.digital_ocean_token.get_secret_value() == "from-token-file"

    def test_token_and_token_file_in_same_layer(self, tmp_path):
        token_file = tmp_path / "token"
        token_file.write_text("from-token-file\n")
        config_path = self.write_config(tmp_path, "")
        with pytest.raises(ConfigValidationError, match="Both 'digital_ocean_token'"):
            load_config(
                parse_args(["--config", str(config_path)]),
                {
                    "DO_DYNDNS_DIGITAL_OCEAN_TOKEN": "env-token",
                    "DO_DYNDNS_TOKEN_FILE_PATH": str(token_file),
                },
            )

    def test_cli_token_options_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(["--digital-ocean-token", "a", "--token-file-path", "/tmp/token"])


class TestSecretValues:
    """Tests for Config.secret_values."""

    def test_all_tokens(self):
        config = dict_to_config(
            {
                "digital_ocean_token": "legacy",
                "providers": [{"provider": "hetzner", "token": "hz"}],
                "domains": MINIMAL_DOMAINS,
            },
        )
        assert config.secret_values() == ["hz", "legacy"]
