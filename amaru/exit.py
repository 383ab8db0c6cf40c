"""Turn process termination signals into an event that a running program can wait on."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

_log = logging.getLogger("amaru.exit")


def _exit_signals() -> list[signal.Signals]:
    if sys.platform == "win32":
        return [signal.SIGINT]
    return [signal.SIGINT, signal.SIGTERM]


def hook_exit_event() -> asyncio.Event:
    """Return an event that is set once SIGINT (or SIGTERM, where supported) arrives.

    Must be called from within a running event loop. The handlers are removed after
    the first signal, so a second one falls back to the default behaviour.
    """
    loop = asyncio.get_running_loop()
    event = asyncio.Event()
    signals = _exit_signals()

    if sys.platform == "win32":
        previous = signal.getsignal(signal.SIGINT)

        def _on_ctrl_c(signum, frame) -> None:
            signal.signal(signal.SIGINT, previous)
            _log.debug("notifying exit")
            loop.call_soon_threadsafe(event.set)

        signal.signal(signal.SIGINT, _on_ctrl_c)
        return event

    def _on_signal(signum: signal.Signals) -> None:
        _log.warning("%s detected", signal.Signals(signum).name)
        for sig in signals:
            loop.remove_signal_handler(sig)
        _log.debug("notifying exit")
        event.set()

    for sig in signals:
        loop.add_signal_handler(sig, _on_signal, sig)
    return event