# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/quickdeploy/logging/log.py

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

FILE_FORMAT = "%(asctime)s | %(levelname)-7s | %(message)s"
CONSOLE_FORMAT = "%(levelname)-7s %(message)s"
KEEP_LOGS = 20


def _prune(base_dir: Path, name: str, keep: int) -> None:
    logs = sorted(base_dir.glob(f"{name}-*.log"), key=lambda p: p.stat().st_mtime)
    for old in logs[:max(len(logs) - keep, 0)]:
        old.unlink()


def init_logging(
    *,
    base_dir: Path | None = None,
    name: str = "quickdeploy",
    verbose: bool = False,
    keep: int = KEEP_LOGS,
) -> tuple[logging.Logger, str, Path]:
    """
    One log file per run holding the full trace (every command with its
    output and exit status), plus terse console output for the operator.
    Only the newest ``keep`` run logs are retained.

    Returns (logger, run_id, log_path); the run_id is shared with observers.
    """
    run_id = str(uuid.uuid4())

    base_dir = Path(base_dir) if base_dir else Path.home() / ".quickdeploy" / "logs"
    base_dir.mkdir(parents=True, exist_ok=True)
    _prune(base_dir, name, max(keep, 1) - 1)

    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    log_path = base_dir / f"{name}-{ts}-{run_id}.log"

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    for h in list(logger.handlers):
        h.close()
        logger.removeHandler(h)
    logger.propagate = False

    fh = logging.FileHandler(log_path, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(logging.Formatter(FILE_FORMAT if verbose else CONSOLE_FORMAT, datefmt="%H:%M:%S"))

    logger.addHandler(fh)
    logger.addHandler(ch)

    logger.debug(f"=== {name} run {run_id} started ===")
    logger.debug(f"log_file={log_path}")

    return logger, run_id, log_path
