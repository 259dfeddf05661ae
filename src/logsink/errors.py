"""Error types raised by the log sink.

Only setup failures reach the caller. Write failures are reported as
`PersistError` by the sinks and absorbed by the subscriber.
"""

from __future__ import annotations


class LogSinkError(Exception):
    """Base class for log sink errors."""


class SetupError(LogSinkError):
    """Schema creation failed (connection, permission or corruption issues)."""


class PersistError(LogSinkError):
    """A single row could not be written."""
