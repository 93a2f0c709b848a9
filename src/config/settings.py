"""Global configuration and constants for the settings control layer."""

from __future__ import annotations

import os
from typing import Final

BACKEND_URL: Final = os.environ.get("CLIPIME_BACKEND_URL", "http://127.0.0.1:17651/")
DEFAULT_USER_AGENT: Final = "clipime-control/0.1"
DEFAULT_TIMEOUT: Final = 10  # seconds
DEFAULT_RETRIES: Final = 3
DEFAULT_BACKOFF_FACTOR: Final = 0.5

# Capability poller cadence (one check per interval, first check immediate)
POLL_INTERVAL_S: Final = float(os.environ.get("CLIPIME_POLL_INTERVAL", "1.0"))

# Update pipeline timings
UPDATE_STATUS_RESET_S: Final = 3.0  # NotAvailable / Error display delay
STARTUP_UPDATE_DELAY_S: Final = float(os.environ.get("CLIPIME_STARTUP_UPDATE_DELAY", "5.0"))

# Save status indicator
SAVE_SUCCESS_RESET_S: Final = 2.0
SAVE_ERROR_RESET_S: Final = 3.0

LOG_BUFFER_CAPACITY: Final = 1000

DEFAULT_CONVERTER_ID: Final = "r"
