"""
Inkwell library containing logging helper functionality
"""

import logging


class NoDebugFilter(logging.Filter):
    """
    Logging filter that filters out any DEBUG message for the specified logger or handler
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if super().filter(record):
            return record.levelno > logging.DEBUG
        return True
