"""WSGI entry point for the GrowTrack backend application.

Provides the CLI entrypoint used in development and the ``app`` object
for WSGI servers in production. Configuration comes from ``GROWTRACK_*``
environment variables.
"""
from __future__ import annotations

import logging
import os
import signal

from app import create_app
from app.config import _env_bool

app = create_app()


def _handle_signal(signum: int, _frame: object) -> None:
    logging.info("Received %s, shutting down", signal.Signals(signum).name)
    app.config["SHUTDOWN"](signal.Signals(signum).name)
    raise SystemExit(0)


def main() -> int:
    host = os.getenv("GROWTRACK_HOST", "0.0.0.0")
    port = int(os.getenv("GROWTRACK_PORT", "8000"))
    debug = _env_bool("GROWTRACK_DEBUG")

    signal.signal(signal.SIGTERM, _handle_signal)

    logging.info("Starting server on %s:%s", host, port)
    try:
        # Threaded so that concurrent requests exercise the per-thread connections.
        app.run(host=host, port=port, debug=debug, use_reloader=False, threaded=True)
        logging.info("Server stopped.")
        return 0
    except KeyboardInterrupt:
        logging.info("Server stopped by user.")
        return 0
    except OSError as exc:
        logging.exception("ERROR: Failed to start server: %s", exc)
        return 1


if __name__ == "__main__":
    # Allow direct execution for development, mirror behavior used by
    # our console script `growtrack-backend`.
    raise SystemExit(main())
