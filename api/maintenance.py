"""
Refresh-token cleanup.

Expired and revoked ledger rows are swept every TOKEN_CLEANUP_INTERVAL by a
daemon thread started from the app factory, and on demand with
`flask --app api cleanup-tokens`.
"""
from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Callable

import click

from models import storage, token_ledger

logger = logging.getLogger(__name__)


def cleanup_expired_tokens() -> int:
    """Delete expired/revoked refresh tokens and return how many went."""
    count = token_ledger.purge()
    if count:
        logger.info("Token cleanup removed %d expired/revoked refresh token(s)", count)
    else:
        logger.info("Token cleanup found nothing to remove")
    return count


class TokenCleanupScheduler:
    """Runs a job inside the app context on a fixed interval."""

    def __init__(self, app, interval: timedelta, job: Callable[[], int] = cleanup_expired_tokens):
        self.app = app
        self.interval = interval
        self.job = job
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def run_once(self) -> int | None:
        with self.app.app_context():
            try:
                return self.job()
            except Exception:
                logger.exception("Token cleanup run failed")
                storage.rollback()
                return None
            finally:
                storage.close()

    def _loop(self):
        while not self._stop.wait(self.interval.total_seconds()):
            self.run_once()

    def start(self):
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="token-cleanup", daemon=True)
        self._thread.start()
        logger.info("Token cleanup scheduled every %s", self.interval)

    def stop(self, timeout: float | None = None):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()


def register_commands(app):
    @app.cli.command("cleanup-tokens")
    def cleanup_tokens_command():
        """Delete expired and revoked refresh tokens."""
        count = cleanup_expired_tokens()
        click.echo(f"Removed {count} expired/revoked refresh token(s)")
