"""TRACE log level for per-file detail below DEBUG."""

import logging

TRACE = 5

logging.addLevelName(TRACE, "TRACE")
