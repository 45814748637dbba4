"""
Update orchestrator.

The updater runs a loop in a worker thread. Each cycle it resolves the
public IP addresses of the host, then for every configured record and every
provider in the record's scope it compares the provider's current value with
the resolved address and updates the record when they differ. Providers are
attempted independently, so one failing provider never prevents the others
from being updated. Between cycles the updater sleeps until the next update
is due or termination is requested.
"""

from __future__ import annotations

import logging
import time
from ipaddress import ip_address
from typing import TYPE_CHECKING

from ddns_updater.cache import CycleRecordCache
from ddns_updater.config import format_duration
from ddns_updater.exceptions import (
    CircuitBreakerError,
    DDNSError,
    InvalidRecordValueError,
    NoEligibleProviderError,
    RecordNotFoundError,
)
from ddns_updater.ip_resolver import DnsIpResolver
from ddns_updater.models import (
    DomainRecordTarget,
    IpFamily,
    RecordUpdateResult,
    UpdateOutcome,
)
from ddns_updater.stats import NopStatsHandler
from ddns_updater.termination import WorkerThread

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import timedelta
    from ipaddress import IPv4Address, IPv6Address
    from typing import Final

    from ddns_updater.config import Config
    from ddns_updater.ip_resolver import PublicIpResolver
    from ddns_updater.models import PublicAddressSet, RecordSet, RemoteRecord
    from ddns_updater.providers.base import BaseDNSProvider
    from ddns_updater.stats import StatsHandler
    from ddns_updater.termination import TerminationHandler


# Failed cycles tolerated before the updater gives up
MAX_FAILED_ATTEMPTS: Final[int] = 10


logger = logging.getLogger(__name__)


def get_record_to_update(
    records: RecordSet,
    target: DomainRecordTarget,
) -> RemoteRecord:
    """
    Find the provider record matching a configured record.

    Parameters
    ----------
    records : RecordSet
        Normalized records of the zone.
    target : DomainRecordTarget
        The configured record.

    Returns
    -------
    RemoteRecord
        The record with the same hostname part and record type.

    Raises
    ------
    RecordNotFoundError
        If no record matches.
    """
    if not records:
        msg = f"Failed to find domain '{target.fqdn}', retrieved domain records are empty"
        raise RecordNotFoundError(msg)

    logger.debug(
        "Looking for record: hostname_part='%s', type='%s'",
        target.hostname_part,
        target.record_type,
    )
    hostname = target.hostname_part.lower() or "@"
    for record in records:
        if record.name.lower() == hostname and record.record_type == target.record_type:
            return record

    msg = f"Domain '{target.fqdn}' not found in the retrieved domain records"
    raise RecordNotFoundError(msg)


def get_ip_for_record_type(
    public_ips: PublicAddressSet,
    record_type: str,
) -> tuple[IPv4Address | IPv6Address, IpFamily] | None:
    """
    Choose the public IP to compare against a record.

    `A` records use IPv4 and `AAAA` records use IPv6. Other record types use
    any resolved address.

    Parameters
    ----------
    public_ips : PublicAddressSet
        The resolved public addresses.
    record_type : str
        The record type.

    Returns
    -------
    tuple[IPv4Address | IPv6Address, IpFamily] | None
        The address and its family, or None if the needed family was not
        resolved.
    """
    if record_type == "A" and public_ips.ipv4 is not None:
        return public_ips.ipv4, IpFamily.V4
    if record_type == "AAAA" and public_ips.ipv6 is not None:
        return public_ips.ipv6, IpFamily.V6
    if record_type not in {"A", "AAAA"} and public_ips.has_any():
        logger.info(
            "Non-standard domain record type: '%s', will use any available IP address "
            "(either ipv4 or ipv6)",
            record_type,
        )
        return public_ips.any()

    logger.warning(
        "No valid IP available for record type '%s', will skip updating this record type.",
        record_type,
    )
    return None


def should_update_domain_ip(
    current_ip: IPv4Address | IPv6Address,
    record: RemoteRecord,
) -> bool:
    """
    Compare the public IP with the IP stored in a provider record.

    Parameters
    ----------
    current_ip : IPv4Address | IPv6Address
        The resolved public IP.
    record : RemoteRecord
        The provider record.

    Returns
    -------
    bool
        True if the addresses differ.

    Raises
    ------
    InvalidRecordValueError
        If the record value is not an IP address.
    """
    try:
        previous_ip = ip_address(record.value.strip())
    except ValueError as e:
        msg = (
            f"Failed parsing '{record.value}' to an IP address in domain record "
            f"'{record.name}' ({record.record_type}), make sure the record has an "
            "initial valid IP"
        )
        raise InvalidRecordValueError(msg) from e
    return current_ip != previous_ip


class Updater:
    """
    Periodic domain record updater.

    Parameters
    ----------
    config : Config
        Application configuration.
    providers : Sequence[BaseDNSProvider]
        Provider clients built by the registry.
    term_handler : TerminationHandler
        Shared termination state.
    stats_handler : StatsHandler | None, optional
        Stats sink; a no-op handler is used if omitted.
    ip_resolver : PublicIpResolver | None, optional
        Public IP source; OpenDNS is used if omitted.
    clock : Callable[[], float], optional
        Monotonic clock used for the inter-cycle sleep.

    Attributes
    ----------
    failed_attempts : int
        Number of failed cycles since startup.
    last_results : list[RecordUpdateResult]
        Per-record results of the last cycle.
    """

    def __init__(
        self,
        config: Config,
        providers: Sequence[BaseDNSProvider],
        term_handler: TerminationHandler,
        *,
        stats_handler: StatsHandler | None = None,
        ip_resolver: PublicIpResolver | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._providers = list(providers)
        self._term_handler = term_handler
        self._stats_handler = stats_handler or NopStatsHandler()
        self._ip_resolver = ip_resolver or DnsIpResolver()
        self._clock = clock
        self.failed_attempts = 0
        self.last_results: list[RecordUpdateResult] = []

    @staticmethod
    def build_records_to_update(config: Config) -> list[DomainRecordTarget]:
        """
        Flatten the configured domains into record targets.

        Parameters
        ----------
        config : Config
            Application configuration.

        Returns
        -------
        list[DomainRecordTarget]
            One target per configured record.
        """
        return [
            DomainRecordTarget(
                domain_name=domain.name,
                hostname_part=record.name,
                record_type=record.record_type,
                providers=tuple(record.providers) if record.providers is not None else None,
            )
            for domain in config.domains
            for record in domain.records
        ]

    @staticmethod
    def build_starting_message(
        interval: timedelta,
        records: Sequence[DomainRecordTarget],
        providers: Sequence[BaseDNSProvider],
    ) -> str:
        """Build the log message summarizing what the updater will do."""
        provider_list = ", ".join(p.name for p in providers) or "None"
        lines = [
            f"Starting updater with update interval: {format_duration(interval)}.",
            f"Configured DNS providers: {provider_list}",
            "The following domain records will be updated:",
        ]
        for record in records:
            label = "provider" if record.providers is not None and len(record.providers) == 1 else "providers"
            lines.append(
                f"    domain record '{record.fqdn}' of type '{record.record_type}' "
                f"({label}: {record.describe_providers()})",
            )
        return "\n".join(lines)

    def attempt_update_for_record_on_provider(
        self,
        provider: BaseDNSProvider,
        public_ips: PublicAddressSet,
        target: DomainRecordTarget,
        cache: CycleRecordCache,
    ) -> UpdateOutcome:
        """
        Update one record on one provider if its IP is out of date.

        Parameters
        ----------
        provider : BaseDNSProvider
            The provider to update.
        public_ips : PublicAddressSet
            The resolved public addresses.
        target : DomainRecordTarget
            The configured record.
        cache : CycleRecordCache
            Record listings of the current cycle.

        Returns
        -------
        UpdateOutcome
            A successful outcome (also when nothing had to change).

        Raises
        ------
        DDNSError
            If listing, matching, comparing or updating fails.
        """
        logger.info("[%s] Attempting to update domain record '%s'", provider.name, target.fqdn)

        records = cache.get_or_fetch(provider, target.domain_name)
        remote = get_record_to_update(records, target)

        selected = get_ip_for_record_type(public_ips, remote.record_type)
        if selected is None:
            return UpdateOutcome(provider=provider.name, attempted=True, success=True)

        current_ip, ip_family = selected
        if not should_update_domain_ip(current_ip, remote):
            logger.info("[%s] Correct IP already set, nothing to do", provider.name)
            return UpdateOutcome(
                provider=provider.name,
                attempted=True,
                success=True,
                ip_family=ip_family,
            )

        logger.info(
            "[%s] Old domain record IP does not match current IP\n"
            "  current public IP:    '%s'\n"
            "  old domain record IP: '%s'.\n"
            "Updating domain record",
            provider.name,
            current_ip,
            remote.value,
        )
        if self._config.dry_run:
            logger.info("[%s] Skipping updating IP due to dry run", provider.name)
            return UpdateOutcome(
                provider=provider.name,
                attempted=True,
                success=True,
                ip_family=ip_family,
            )

        provider.update_record(remote.id, target, current_ip)
        return UpdateOutcome(
            provider=provider.name,
            attempted=True,
            success=True,
            updated=True,
            ip_family=ip_family,
        )

    def attempt_update_for_record(
        self,
        public_ips: PublicAddressSet,
        target: DomainRecordTarget,
        cache: CycleRecordCache,
    ) -> RecordUpdateResult:
        """
        Update one record on every provider in its scope.

        Every provider is attempted even if an earlier one failed. When some
        providers fail, the last failure becomes the record's error even if
        other providers succeeded.

        Parameters
        ----------
        public_ips : PublicAddressSet
            The resolved public addresses.
        target : DomainRecordTarget
            The configured record.
        cache : CycleRecordCache
            Record listings of the current cycle.

        Returns
        -------
        RecordUpdateResult
            The per-provider outcomes and the record's error, if any.
        """
        default_all = self._config.update_all_providers_by_default
        outcomes: list[UpdateOutcome] = []
        last_error: DDNSError | None = None

        for provider in self._providers:
            if not target.should_update_on(provider.provider_type, default_all):
                logger.debug(
                    "[%s] Skipping record '%s' - not configured for this provider",
                    provider.name,
                    target.fqdn,
                )
                outcomes.append(UpdateOutcome(provider=provider.name, attempted=False, success=False))
                continue

            try:
                outcome = self.attempt_update_for_record_on_provider(
                    provider,
                    public_ips,
                    target,
                    cache,
                )
            except DDNSError as e:
                logger.error(  # noqa: TRY400
                    "[%s] Failed to update record '%s': %s",
                    provider.name,
                    target.fqdn,
                    e,
                )
                outcome = UpdateOutcome(
                    provider=provider.name,
                    attempted=True,
                    success=False,
                    error=e,
                )
                last_error = e
            outcomes.append(outcome)

        result = RecordUpdateResult(target, outcomes)

        if result.success_count == 0 and result.failure_count == 0:
            msg = (
                f"Record '{target.fqdn}' filtered all {result.filtered_count} configured "
                "provider(s) - no updates performed. Check your provider configuration."
            )
            result.error = NoEligibleProviderError(msg)
            return result

        if result.success_count > 0 and result.failure_count > 0:
            logger.warning(
                "Record '%s' update completed with partial failures: "
                "%d provider(s) succeeded, %d provider(s) failed",
                target.fqdn,
                result.success_count,
                result.failure_count,
            )

        result.error = last_error
        return result

    def attempt_update(self, records: Sequence[DomainRecordTarget]) -> None:
        """
        Run one update cycle.

        Parameters
        ----------
        records : Sequence[DomainRecordTarget]
            The configured records.

        Raises
        ------
        DDNSError
            The first error of the cycle (IP resolution or a record), after
            every record has been processed.
        """
        first_error: DDNSError | None = None
        public_ips: PublicAddressSet | None = None
        try:
            public_ips = self._ip_resolver.fetch(self._config.ipv4, self._config.ipv6)
        except DDNSError as e:
            logger.error("Ip fetching failed: %s", e)  # noqa: TRY400
            first_error = e

        self._stats_handler.record_ip_fetch(public_ips)

        cache = CycleRecordCache()
        results: list[RecordUpdateResult] = []
        for target in records:
            success = False
            ip_family: IpFamily | None = None
            # Without public IPs every record counts as a failed attempt
            if public_ips is not None:
                result = self.attempt_update_for_record(public_ips, target, cache)
                results.append(result)
                success = result.success
                ip_family = result.ip_family
                if result.error is not None:
                    logger.error("%s", result.error)
                    if first_error is None:
                        first_error = result.error

            self._stats_handler.record_update_attempt(
                target.fqdn,
                target.record_type,
                success,
                ip_family,
            )

        self.last_results = results
        if first_error is not None:
            raise first_error

    def start_update_loop(self) -> None:
        """
        Run update cycles until termination is requested.

        Raises
        ------
        CircuitBreakerError
            If more than `MAX_FAILED_ATTEMPTS` cycles failed.
        """
        records = self.build_records_to_update(self._config)
        self._stats_handler.init()

        logger.info(
            "%s",
            self.build_starting_message(self._config.update_interval, records, self._providers),
        )

        while not self._term_handler.should_exit():
            try:
                self.attempt_update(records)
            except DDNSError as e:
                logger.error("Domain record update attempt failed: %s", e)  # noqa: TRY400
                self.failed_attempts += 1

            self._stats_handler.log_summary()

            if self.failed_attempts > MAX_FAILED_ATTEMPTS:
                logger.warning("Too many failed domain record update attempts. Shutting down updater")
                msg = f"Updater stopped after {self.failed_attempts} failed update attempts"
                raise CircuitBreakerError(msg)

            logger.debug("Sleeping for %s", format_duration(self._config.update_interval))
            if self._was_interrupted_while_sleeping():
                break

        logger.info("Updater received signal to shut down. Shutting down")

    def run(self) -> None:
        """Run the update loop, then release the main thread's signal dispatch."""
        try:
            self.start_update_loop()
        finally:
            self._term_handler.notify_exit_and_stop_signal_handling()

    def start_update_loop_detached(self) -> WorkerThread:
        """
        Start the update loop in a worker thread.

        The thread is registered with the termination handler, which joins it
        on shutdown.

        Returns
        -------
        WorkerThread
            The started worker thread.
        """
        thread = WorkerThread(target=self.run, name="updater")
        self._term_handler.set_updater_thread(thread)
        thread.start()
        return thread

    def _was_interrupted_while_sleeping(self) -> bool:
        return self._term_handler.sleep(
            self._config.update_interval.total_seconds(),
            self._clock,
        )
