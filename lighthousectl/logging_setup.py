from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(
    *,
    level: int = logging.WARNING,
    log_file: Path | None = None,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
) -> None:
    """
    Configures the root logger with a stderr handler and, if `log_file` is given,
    a rotating file handler. Nothing is written to stdout so `--json` output stays clean.
    Safe to call multiple times (won't duplicate handlers).
    """
    root = logging.getLogger()
    root.setLevel(level)
    fmt = logging.Formatter(_FORMAT)

    has_stream = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in root.handlers
    )
    if not has_stream:
        sh = logging.StreamHandler()
        sh.setFormatter(fmt)
        root.addHandler(sh)

    if log_file is None:
        return

    # Dedupe file handlers by resolved path.
    target = log_file.expanduser().resolve()
    for h in root.handlers:
        if isinstance(h, RotatingFileHandler) and Path(h.baseFilename).resolve() == target:
            return

    target.parent.mkdir(parents=True, exist_ok=True)
    fh = RotatingFileHandler(target, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    fh.setLevel(level)
    fh.setFormatter(fmt)
    root.addHandler(fh)
