import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger("neura")


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger (idempotent)."""
    root = logging.getLogger()
    if not any(getattr(h, "_neura", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._neura = True
        root.addHandler(handler)
    root.setLevel(level.upper())


def mask_secret(value: str | None) -> str:
    if not value or len(value) < 2:
        return "**"
    return "*" * (len(value) - 1) + value[-1]
