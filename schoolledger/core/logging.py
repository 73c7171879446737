"""Process-wide logging setup. Modules log through ``logging.getLogger(__name__)``."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger (idempotent)."""
    root = logging.getLogger()
    if not any(getattr(h, "_schoolledger", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._schoolledger = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level.upper())
    # APScheduler is chatty at INFO (one line per job submission)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
