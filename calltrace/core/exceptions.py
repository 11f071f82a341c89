"""Calltrace custom exceptions."""


class CalltraceError(Exception):
    """Base exception for Calltrace errors."""


class ProgramLoadError(CalltraceError):
    """Program location is missing, unreadable, or malformed."""


class ParseError(CalltraceError):
    """Error parsing a source file."""


class RunNotFoundError(CalltraceError):
    """Saved run not found in storage."""


class StorageError(CalltraceError):
    """Storage rejected a record."""
