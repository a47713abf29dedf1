"""Log filters for location privacy and correlation ID injection."""

import logging
import re


class LocationPrivacyFilter(logging.Filter):
    """Coarsens coordinates to ~100 m and masks e-mails in log messages.

    A trace of exact positions towards a saved destination is as sensitive
    as a home address.
    """

    EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+")
    COORDINATE_PATTERN = re.compile(r"(-?\d{1,3}\.\d{3})\d+")

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            msg = record.msg
            if "@" in msg:
                msg = self.EMAIL_PATTERN.sub("[EMAIL]", msg)
            if "." in msg:
                msg = self.COORDINATE_PATTERN.sub(r"\1", msg)
            record.msg = msg
        return True


class DefaultCorrelationFilter(logging.Filter):
    """Adds default session_id and correlation_id if not present."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = "-"
        if not hasattr(record, "session_id"):
            record.session_id = "-"
        return True
