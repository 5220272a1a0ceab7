"""Error types raised by the blocking engine and its collaborators."""


class FrickError(Exception):
    """Base class for all errors reported by frick."""


class Unauthorized(FrickError):
    """Blocking was refused because the platform permission is not granted."""

    def __init__(self, reason: str | None = None):
        self.reason = reason
        super().__init__(reason or "Blocking permission has not been granted.")


class WrongTag(FrickError):
    """A scanned tag did not carry the expected payload. Nothing changed."""

    def __init__(self, payload: str):
        self.payload = payload
        super().__init__("This is not a Frick tag. Create a new tag with `frick write-tag`.")


class ScanFailed(FrickError):
    """The tag could not be read."""


class WriteFailed(FrickError):
    """The tag could not be written."""


class ShieldError(FrickError):
    """Raised by a shield applicator when the platform refuses an operation."""


class ShieldApplyFailed(FrickError):
    """The toggle was recorded but the shield could not be applied or cleared."""

    def __init__(self, blocking: bool, cause: Exception | None = None):
        self.blocking = blocking
        self.cause = cause
        action = "apply" if blocking else "clear"
        super().__init__(f"Failed to {action} the shield. Please try again.")


class InvalidState(FrickError):
    """An operation was called in a state where it is not valid."""


class TransitionInProgress(FrickError):
    """Another toggle is already being applied."""


class InvalidInput(FrickError):
    """An argument failed validation."""


class ProfileError(FrickError):
    """Base class for profile store contract violations."""


class NotFound(ProfileError):
    def __init__(self, profile_id):
        self.profile_id = profile_id
        super().__init__(f"No profile with id {profile_id}")


class LastProfile(ProfileError):
    def __init__(self):
        super().__init__("The last remaining profile cannot be deleted.")
