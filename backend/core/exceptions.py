"""Custom exception hierarchy for the online tracker."""


class TrackerError(Exception):
    """Base error."""
    def __init__(self, message: str, code: str = "TRACKER_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class AuthError(TrackerError):
    """Missing or wrong shared secret on the stats bridge."""
    def __init__(self, message: str = "Invalid stats key"):
        super().__init__(message, code="AUTH_ERROR")


class ValidationError(TrackerError):
    """Malformed identifiers or parameters, rejected before touching the store."""
    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, code="VALIDATION_ERROR")


class StoreUnavailableError(TrackerError):
    """Persistence call failed."""
    def __init__(self, message: str = "Session store unavailable"):
        super().__init__(message, code="STORE_UNAVAILABLE")


class SessionConflictError(TrackerError):
    """Login kept losing the one-active-session race."""
    def __init__(self, message: str = "Concurrent login conflict"):
        super().__init__(message, code="SESSION_CONFLICT")
