"""Process-wide logging setup."""

import logging

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Install a single console handler on the root logger."""

    global _configured
    if _configured:
        return
    _configured = True

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root = logging.getLogger()
    root.setLevel(level.upper())
    root.addHandler(handler)
