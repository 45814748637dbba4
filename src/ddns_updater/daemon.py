"""
Daemon bootstrap.

Wires the provider clients, the stats handler and the termination handler
into an `Updater`, runs it in a worker thread and dispatches signals on the
main thread until shutdown.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ddns_updater.registry import build_providers
from ddns_updater.stats import new_stats_handler
from ddns_updater.termination import TerminationHandler
from ddns_updater.updater import Updater

if TYPE_CHECKING:
    from ddns_updater.config import Config
    from ddns_updater.ip_resolver import PublicIpResolver


logger = logging.getLogger(__name__)


def start_daemon(
    config: Config,
    *,
    ip_resolver: PublicIpResolver | None = None,
) -> None:
    """
    Run the updater until a termination signal or a fatal error.

    Must be called from the main thread.

    Parameters
    ----------
    config : Config
        Validated application configuration.
    ip_resolver : PublicIpResolver | None, optional
        Public IP source; OpenDNS is used if omitted.

    Raises
    ------
    DDNSError
        If no provider can be built or the updater stops on an error.
    """
    providers = build_providers(config)
    stats_handler = new_stats_handler(config)
    term_handler = TerminationHandler()

    term_handler.subscribe_signals()
    term_handler.setup_exit_panic_hook()
    try:
        updater = Updater(
            config,
            providers,
            term_handler,
            stats_handler=stats_handler,
            ip_resolver=ip_resolver,
        )
        updater.start_update_loop_detached()
        term_handler.handle_term_signals_gracefully()
    finally:
        term_handler.remove_exit_panic_hook()
        term_handler.restore_signals()
        for provider in providers:
            provider.close()
