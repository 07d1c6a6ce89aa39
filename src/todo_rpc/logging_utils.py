from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_HANDLER_NAME = "todo_rpc"


def configure_logging(level: str = "INFO") -> None:
    """
    Attach a single stream handler to the package logger. Calling it again only
    updates the level.
    """
    logger = logging.getLogger("todo_rpc")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if any(h.get_name() == _HANDLER_NAME for h in logger.handlers):
        return
    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
