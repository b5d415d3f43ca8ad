"""
Logging configuration for notetagger.

Quiet by default: only warnings from third-party libraries reach the user.
"""

import logging
import sys
import warnings


def configure_quiet_mode(quiet: bool = True):
    """
    Configure logging to suppress verbose library output.

    Args:
        quiet: If True, suppress verbose output. If False, show everything.
    """
    if quiet:
        warnings.filterwarnings("ignore")
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("requests").setLevel(logging.WARNING)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    warnings.filterwarnings("default")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    if not any(isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    for name in ("notetagger", "urllib3"):
        logging.getLogger(name).setLevel(logging.DEBUG)


def configure_ops_log(config_dir):
    """Configure a persistent operations log for a vault.

    Writes to {config_dir}/notetagger-ops.log using a rotating file handler
    (1MB max, 3 backups). Always active regardless of --verbose.
    Returns the handler so the caller can remove it when done.
    """
    from logging.handlers import RotatingFileHandler
    from pathlib import Path

    config_dir = Path(config_dir)
    config_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        str(config_dir / "notetagger-ops.log"),
        maxBytes=1_000_000,
        backupCount=3,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    tagger_logger = logging.getLogger("notetagger")
    tagger_logger.addHandler(handler)
    # Let INFO through even in quiet mode
    if tagger_logger.level == logging.NOTSET or tagger_logger.level > logging.INFO:
        tagger_logger.setLevel(logging.INFO)

    return handler
