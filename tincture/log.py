# Copyright (c) 2026 Tincture
# SPDX-License-Identifier: MIT

"""Logger factory for the tincture package."""

from __future__ import annotations

import logging
import os
from typing import Final

# Environment override; handlers are left to the application
_LEVEL_NAME: Final[str] = os.getenv("TINCTURE_LOG_LEVEL", "INFO").upper()
_PACKAGE_LOGGER_LEVEL: Final[int] = getattr(logging, _LEVEL_NAME, logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """Return a module-level logger without touching global handlers."""
    logger = logging.getLogger(name)
    logger.setLevel(_PACKAGE_LOGGER_LEVEL)
    return logger
