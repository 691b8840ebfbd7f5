"""Utility functions for pathway enrichment analysis."""

import logging
import re
from pathlib import Path
from typing import Dict, Iterable


def setup_logging(log_dir=None, level=logging.INFO):
    """Set up logging configuration.

    Args:
        log_dir: Directory to store log files
        level: Logging level
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if log_dir:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / 'pipeline.log'

        file_handler = logging.FileHandler(log_file, mode='w')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        root_logger.addHandler(file_handler)
        # Write straight away so the log file exists even for short runs
        root_logger.info("Logging initialised")

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s'
    ))
    root_logger.addHandler(console_handler)

    return logging.getLogger('pathfisher')


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path

    Returns:
        Path object for the directory
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def safe_filename(name: str) -> str:
    """Replace characters that are unsafe in file names with underscores."""
    return re.sub(r'[^A-Za-z0-9_.-]+', '_', name).strip('_') or 'unnamed'


def safe_filenames(names: Iterable[str]) -> Dict[str, str]:
    """Map names to file-safe stems, refusing names that would share a file.

    Args:
        names: Names to map, e.g. test set names

    Returns:
        Dictionary of name to file-safe stem, in input order

    Raises:
        ValueError: If two names map to the same stem
    """
    stems: Dict[str, str] = {}
    owners: Dict[str, str] = {}
    for name in names:
        stem = safe_filename(name)
        if stem in owners and owners[stem] != name:
            raise ValueError(
                f"Test sets '{owners[stem]}' and '{name}' would both be written as '{stem}'; "
                f"rename one of them"
            )
        owners[stem] = name
        stems[name] = stem
    return stems
