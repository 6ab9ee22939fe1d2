from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Install one stream handler on the `backoffice` logger tree.
    Safe to call more than once (e.g. app factory used by tests).
    """
    root = logging.getLogger("backoffice")
    root.setLevel((level or "INFO").upper())
    if not any(getattr(h, "_backoffice", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._backoffice = True  # type: ignore[attr-defined]
        root.addHandler(handler)
