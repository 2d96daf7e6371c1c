"""Exceptions raised by services; mapped to HTTP responses in main."""


class AttendanceAdminError(Exception):
    """Base exception for operator-facing failures."""


class StoreError(AttendanceAdminError):
    """Raised when a read or write against the tree store fails."""


class ValidationFailed(AttendanceAdminError):
    """Raised when a required selection or field is missing or invalid."""


class NotFound(AttendanceAdminError):
    """Raised when the record an operation targets does not exist."""


class Conflict(AttendanceAdminError):
    """Raised when a fingerprint slot is already reserved."""
