"""
Error kinds surfaced by the attendance engine, the DPR log and the local store.

None of these is fatal: callers decide whether to re-prompt for permission,
retry, or abandon the action.
"""


class FieldAppError(Exception):
    code = "field_app_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class PermissionDenied(FieldAppError):
    """Location permission has not been granted."""
    code = "permission_denied"


class LocationUnavailable(FieldAppError):
    """No fresh or last-known fix could be produced within the bounded wait."""
    code = "location_unavailable"


class InvalidTransition(FieldAppError):
    """The requested punch is not legal from the current attendance state."""
    code = "invalid_transition"


class StorageFailure(FieldAppError):
    """A write could not be durably committed, or a read could not be answered; prior state is intact."""
    code = "storage_failure"


class EngineClosed(FieldAppError):
    """The attendance engine was torn down before the punch could be recorded."""
    code = "shutting_down"
