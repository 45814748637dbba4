"""Tests for the daemon bootstrap and CLI entry point."""

from __future__ import annotations

import signal
import sys

import pytest

from ddns_updater import cli
from ddns_updater.config import dict_to_config
from ddns_updater.daemon import start_daemon
from ddns_updater.exceptions import CircuitBreakerError, ConfigurationError, ResolutionError
from ddns_updater.ip_resolver import PublicIpResolver


class FailingIpResolver(PublicIpResolver):
    def __init__(self):
        self.calls = 0

    def fetch(self, want_v4, want_v6):
        self.calls += 1
        msg = "no answer"
        raise ResolutionError(msg)


def make_config(**options):
    data = {
        "update_interval": "1ms",
        "providers": [{"provider": "hetzner", "token": "hz-token"}],
        "domains": [{"name": "example.com", "records": [{"name": "home", "type": "A"}]}],
    }
    data.update(options)
    return dict_to_config(data)


class TestStartDaemon:
    """Tests for start_daemon."""

    def test_circuit_breaker_stops_daemon(self):
        previous = signal.getsignal(signal.SIGTERM)
        resolver = FailingIpResolver()

        with pytest.raises(CircuitBreakerError):
            start_daemon(make_config(), ip_resolver=resolver)

        assert resolver.calls == 11
        assert signal.getsignal(signal.SIGTERM) is previous

    def test_no_provider(self):
        with pytest.raises(ConfigurationError):
            start_daemon(make_config(providers=[]), ip_resolver=FailingIpResolver())


class TestMain:
    """Tests for the CLI entry point."""

    def test_invalid_config_exits(self, monkeypatch, tmp_path, capsys):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(sys, "argv", ["ddns-updater", "--no-ipv4"])

        with pytest.raises(SystemExit) as exc_info:
            cli.main()

        assert exc_info.value.code == 1
        assert "Configuration error" in capsys.readouterr().err

    def test_daemon_error_exits(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(
            sys,
            "argv",
            ["ddns-updater", "--domain-root", "example.com", "--update-domain-root"],
        )
        monkeypatch.setattr(cli, "setup_logging", lambda config, secrets=(): None)

        def fail(config):
            msg = "stopped"
            raise CircuitBreakerError(msg)

        monkeypatch.setattr(cli, "start_daemon", fail)

        with pytest.raises(SystemExit) as exc_info:
            cli.main()
        assert exc_info.value.code == 1

    def test_clean_shutdown(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(
            sys,
            "argv",
            ["ddns-updater", "--domain-root", "example.com", "--subdomain-to-update", "home"],
        )
        monkeypatch.setattr(cli, "setup_logging", lambda config, secrets=(): None)
        started = []
        monkeypatch.setattr(cli, "start_daemon", started.append)

        cli.main()

        assert started[0].domains[0].records[0].name == "home"
