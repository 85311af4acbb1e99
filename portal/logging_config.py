"""
Logging setup shared by the portal modules and the Streamlit app.
"""

import logging
import sys

_FORMAT = "%(asctime)s [%(name)-18s] %(levelname)-7s %(message)s"
_JSON_FORMAT = '{"timestamp":"%(asctime)s","level":"%(levelname)s","module":"%(name)s","message":"%(message)s"}'


def setup_logging(level: int = logging.INFO, json_format: bool = False) -> None:
    """Configure the root logger once.

    Args:
        level: Logging level.
        json_format: If True, emit JSON-like log lines.
    """
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_JSON_FORMAT if json_format else _FORMAT, datefmt="%H:%M:%S"))
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
