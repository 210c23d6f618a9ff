"""Logging setup for the API process."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging once at startup.

    Application modules log through ``logging.getLogger(__name__)`` so every
    record lands under the ``wealthmap`` namespace.
    """
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger("wealthmap").setLevel(level.upper())
