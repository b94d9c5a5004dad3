"""Cooperative cancellation for batch tagging runs.

A single process-wide :class:`threading.Event` is set by SIGINT/SIGTERM. The
window scheduler checks it before submitting each window; once set, no new
windows are classified and the segments gathered so far are flushed.
"""

from __future__ import annotations

import logging
import signal
import threading

logger = logging.getLogger(__name__)

_cancel_event: threading.Event | None = None
_installed_for: threading.Event | None = None


def get_cancel_event() -> threading.Event:
    """Get or create the process-wide cancellation event.

    Returns:
        The event that is set once cancellation has been requested.
    """
    global _cancel_event
    if _cancel_event is None:
        _cancel_event = threading.Event()
    return _cancel_event


def install_signal_handlers(cancel_event: threading.Event | None = None) -> bool:
    """Route SIGINT and SIGTERM to ``cancel_event``.

    Signal handlers can only be installed from the main thread; elsewhere the
    call is a logged no-op.

    Args:
        cancel_event: Event to set on signal. Defaults to the global event.

    Returns:
        ``True`` if handlers are in place for the event after the call.
    """
    global _installed_for

    event = cancel_event if cancel_event is not None else get_cancel_event()
    if _installed_for is event:
        return True
    if threading.current_thread() is not threading.main_thread():
        logger.debug("Not on the main thread; signal handlers not installed")
        return False

    def _request_cancel(signum: int, frame: object) -> None:
        del frame
        if event.is_set():
            # Second interrupt: let the default handler terminate the process.
            signal.signal(signal.SIGINT, signal.default_int_handler)
        logger.warning(
            f"Received {signal.Signals(signum).name}, finishing pending windows and stopping"
        )
        event.set()

    signal.signal(signal.SIGINT, _request_cancel)
    signal.signal(signal.SIGTERM, _request_cancel)
    _installed_for = event
    logger.debug("Signal handlers installed for SIGINT and SIGTERM")
    return True


def reset_cancel_event() -> None:
    """Clear the global cancel event so another batch can run."""
    if _cancel_event is not None:
        _cancel_event.clear()


def is_cancelled(cancel_event: threading.Event | None = None) -> bool:
    """Check whether cancellation has been requested.

    Args:
        cancel_event: Event to check. ``None`` checks the global event.

    Returns:
        True if cancellation has been requested, False otherwise.
    """
    event = cancel_event if cancel_event is not None else get_cancel_event()
    return event.is_set()
