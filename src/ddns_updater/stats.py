"""
Update statistics handlers.

The updater reports every public IP fetch and every per-record update
attempt to a stats handler. Collection is optional: when disabled a no-op
handler is used.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections import Counter
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ddns_updater.config import Config
    from ddns_updater.models import IpFamily, PublicAddressSet


logger = logging.getLogger(__name__)


class StatsHandler(ABC):
    """Sink for public IP fetch and update attempt outcomes."""

    @abstractmethod
    def init(self) -> None:
        """Prepare the handler before the first update cycle."""
        ...

    @abstractmethod
    def record_ip_fetch(self, addresses: PublicAddressSet | None) -> None:
        """
        Record the outcome of a public IP fetch.

        Parameters
        ----------
        addresses : PublicAddressSet | None
            The resolved addresses, or None if resolution failed.
        """
        ...

    @abstractmethod
    def record_update_attempt(
        self,
        record_name: str,
        record_type: str,
        success: bool,
        ip_family: IpFamily | None,
    ) -> None:
        """
        Record the outcome of updating one record across its providers.

        Parameters
        ----------
        record_name : str
            The FQDN of the record.
        record_type : str
            The record type.
        success : bool
            Whether the record was updated (or already up to date) on all
            providers in scope.
        ip_family : IpFamily | None
            The address family that was compared against the record.
        """
        ...

    def log_summary(self) -> None:
        """Log the statistics collected so far, if any."""


class NopStatsHandler(StatsHandler):
    """Stats handler used when stats collection is disabled."""

    def init(self) -> None:
        pass

    def record_ip_fetch(self, addresses: PublicAddressSet | None) -> None:
        pass

    def record_update_attempt(
        self,
        record_name: str,
        record_type: str,
        success: bool,
        ip_family: IpFamily | None,
    ) -> None:
        pass


class MemoryStatsHandler(StatsHandler):
    """
    Stats handler keeping counters in memory.

    Attributes
    ----------
    fetches : Counter[str]
        Public IP fetch counts by outcome ("succeeded", "failed").
    attempts : Counter[tuple[str, str, bool]]
        Update attempt counts keyed by (record name, record type, success).
    last_addresses : PublicAddressSet | None
        The most recently resolved addresses.
    last_ip_family : dict[tuple[str, str], IpFamily]
        The last address family used per (record name, record type).
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.fetches: Counter[str] = Counter()
        self.attempts: Counter[tuple[str, str, bool]] = Counter()
        self.last_addresses: PublicAddressSet | None = None
        self.last_ip_family: dict[tuple[str, str], IpFamily] = {}

    def init(self) -> None:
        logger.debug("Collecting update statistics in memory.")

    def record_ip_fetch(self, addresses: PublicAddressSet | None) -> None:
        with self._lock:
            if addresses is None:
                self.fetches["failed"] += 1
                return
            self.fetches["succeeded"] += 1
            self.last_addresses = addresses

    def record_update_attempt(
        self,
        record_name: str,
        record_type: str,
        success: bool,
        ip_family: IpFamily | None,
    ) -> None:
        with self._lock:
            self.attempts[(record_name, record_type, success)] += 1
            if ip_family is not None:
                self.last_ip_family[(record_name, record_type)] = ip_family

    def successes(self, record_name: str, record_type: str) -> int:
        """Number of successful attempts for a record."""
        with self._lock:
            return self.attempts[(record_name, record_type, True)]

    def failures(self, record_name: str, record_type: str) -> int:
        """Number of failed attempts for a record."""
        with self._lock:
            return self.attempts[(record_name, record_type, False)]

    def summary(self) -> str:
        """
        Summarize the counters in one line.

        Returns
        -------
        str
            Fetch and update attempt totals by outcome.
        """
        with self._lock:
            succeeded = sum(n for (_, _, ok), n in self.attempts.items() if ok)
            failed = sum(n for (_, _, ok), n in self.attempts.items() if not ok)
            return (
                f"IP fetches: {self.fetches['succeeded']} succeeded, "
                f"{self.fetches['failed']} failed; "
                f"record updates: {succeeded} succeeded, {failed} failed"
            )

    def log_summary(self) -> None:
        logger.debug("Update statistics: %s", self.summary())


def new_stats_handler(config: Config) -> StatsHandler:
    """
    Create the stats handler selected by the configuration.

    Parameters
    ----------
    config : Config
        Application configuration.

    Returns
    -------
    StatsHandler
        A memory handler if `collect_stats` is enabled, else a no-op handler.
    """
    if config.collect_stats:
        return MemoryStatsHandler()
    return NopStatsHandler()
