"""Process-wide logging setup for the API and CLI."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(debug: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # SQL echo is noisy at DEBUG; keep engine logs at WARNING unless asked.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
