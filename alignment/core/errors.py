# alignment/core/errors.py


class ReminderError(Exception):
    """Base class for reminder engine failures."""


class PermissionDenied(ReminderError):
    USER_MESSAGE = (
        "Notifications disabled: enable notifications in your device settings to receive reminders."
    )

    def __init__(self, message: str = USER_MESSAGE):
        super().__init__(message)


class TransportFailure(ReminderError):
    """Push gateway unreachable or answered with something we can't read."""


class PersistenceFailure(ReminderError):
    """A write to Supabase or to the local key-value store did not go through."""


class ConfigurationError(ReminderError):
    """Credentials missing; the whole invocation must stop."""
