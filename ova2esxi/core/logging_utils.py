# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
"""
Stage timing for the import pipeline.
"""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Generator


def emoji_for_level(level: int) -> str:
    if level >= logging.ERROR:
        return "❌"
    if level >= logging.WARNING:
        return "⚠️"
    if level >= logging.INFO:
        return "✅"
    return "🔍"


@contextmanager
def log_step(logger: logging.Logger, description: str) -> Generator[None, None, None]:
    """
    Log the start of a pipeline stage, run the block, then log completion
    with the elapsed time. Failures are logged and re-raised.

        with log_step(logger, "Extracting appliance"):
            importer.extract_appliance(directory, filename)
    """
    t0 = time.monotonic()
    logger.info("%s %s ...", emoji_for_level(logging.INFO), description)
    try:
        yield
    except Exception as e:
        logger.error("%s %s failed (%.2fs): %s", emoji_for_level(logging.ERROR), description, time.monotonic() - t0, e)
        raise
    logger.info("%s %s done (%.2fs)", emoji_for_level(logging.INFO), description, time.monotonic() - t0)
