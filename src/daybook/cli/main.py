# src/daybook/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the habit reminder loop in a background thread (optional),
- the console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import ConsoleMessenger, run_console_loop
from ..errors import PersistenceError
from ..habits.reminder_scheduler import ReminderRunner, run_habit_reminders
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state) -> None:
    """Stores save on every change; only report what did not make it to disk."""
    for name, store in (("tasks", state.task_store), ("habits", state.habit_store)):
        if store.last_persistence_error is not None:
            logger.warning("Unsaved %s changes may be lost: %s", name, store.last_persistence_error)


def _start_reminders(state) -> ReminderRunner:
    settings = state.settings
    messenger = ConsoleMessenger()

    def _factory():
        return run_habit_reminders(
            state.habit_store,
            messenger,
            interval_seconds=settings.reminder_interval_seconds,
            lock=state.lock,
        )

    logger.info("Habit reminders enabled (every %.0fs).", settings.reminder_interval_seconds)
    return ReminderRunner(_factory).start()


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    # IMPORTANT: reuse same settings object
    try:
        state = create_initial_state(settings=settings)
    except PersistenceError as e:
        logger.error("Cannot open storage: %s", e)
        raise SystemExit(1) from None

    reminder_runner: ReminderRunner | None = None
    if settings.reminders_enabled:
        reminder_runner = _start_reminders(state)

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        if settings.console_enabled:
            # Ctrl+C stays a KeyboardInterrupt so input() can end the loop.
            run_console_loop(state)
            stop_main.set()
        else:
            try:
                signal.signal(signal.SIGINT, _handle_signal)
                signal.signal(signal.SIGTERM, _handle_signal)
            except (ValueError, OSError):
                # Not in the main thread, or the platform lacks SIGTERM.
                pass
            logger.info("Console disabled. Running reminders only. Press Ctrl+C to stop.")
            stop_main.wait()

    finally:
        if reminder_runner is not None:
            reminder_runner.stop()
            reminder_runner.join(timeout=10.0)

        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
