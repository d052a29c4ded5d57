# src/tab_relay/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds the relay app, then serves it with uvicorn.
uvicorn handles SIGINT/SIGTERM; the app lifespan fails outstanding waits
and flushes the tab snapshot on the way out.
"""

from __future__ import annotations

import logging

import uvicorn

from ..cli.bootstrap import create_relay_app
from ..config import get_settings
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(log_dir=getattr(settings, "data_dir", ".local/tab-relay"), console_level=console_level)

    logger.info("Starting %s on %s:%s...", settings.app_name, settings.host, settings.port)

    app = create_relay_app(settings=settings)

    # log_config=None keeps uvicorn on the handlers configured above.
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)

    logger.info("Bye.")


if __name__ == "__main__":
    main()
