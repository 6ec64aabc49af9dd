"""myday-voice - voice command entry point."""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import AppConfig


def _setup_logging(log_dir: Path) -> logging.Logger:
    """Configure secure logging with rotation.

    Logs are written to <data_dir>/logs/ with owner-only permissions.
    Uses INFO level by default; set MYDAY_VOICE_DEBUG=1 for DEBUG level.
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    # Transcripts may appear in debug logs; owner only (700)
    log_dir.chmod(0o700)

    log_file = log_dir / "myday-voice.log"

    log_level = logging.DEBUG if os.environ.get("MYDAY_VOICE_DEBUG") else logging.INFO

    # 5MB max, keep 3 backups
    handler = RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(handler)

    return logging.getLogger(__name__)


def main() -> None:
    """Entry point for the ``myday-voice`` console script."""
    from .cli import create_parser, run_cli

    # Only --data-dir matters here; run_cli reports usage errors
    known, _ = create_parser().parse_known_args()
    config = AppConfig.load(Path(known.data_dir) if known.data_dir else None)
    logger = _setup_logging(config.log_dir)
    logger.debug(f"Starting myday-voice with args {sys.argv[1:]}")

    sys.exit(run_cli())


if __name__ == "__main__":
    main()
