"""Error taxonomy for the test-session engine."""


class TestSessionError(Exception):
    """Base class for all engine errors."""

    __test__ = False  # keep pytest from collecting this class

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(TestSessionError):
    """Test, question set or session is missing."""


class ValidationError(TestSessionError):
    """Input rejected before anything was persisted."""


class BackendError(TestSessionError):
    """Backend call failed (network, database, timeout)."""


class ScoringError(TestSessionError):
    """Score cannot be computed (zero questions)."""


class SessionStateError(TestSessionError):
    """Operation not permitted in the current session state."""
