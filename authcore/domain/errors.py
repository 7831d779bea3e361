class DomainError(Exception):
    """Base class for all domain-level errors."""

    pass


class InvalidStatusTransition(DomainError):
    """Tried to change a session's state in a way that's not allowed."""

    pass


class UserNotFound(DomainError):
    """No user matches the lookup criteria."""

    pass


class DeliveryFailed(DomainError):
    """The notification sender could not deliver the code. Safe to re-issue."""

    pass


class StorageUnavailable(DomainError):
    """The backing store failed. Never retried inside the core."""

    pass


class SessionAlreadyExists(DomainError):
    """A session is already tracked for this session_token_id."""

    pass
