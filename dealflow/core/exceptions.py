class DealflowError(Exception):
    """Base exception for the entitlement engine.

    Every error carries a human-readable ``reason`` suitable for a toast, and a
    ``retryable`` flag telling the UI whether offering "try again" makes sense.
    Nothing in the engine retries automatically.
    """

    retryable = False

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class AlreadyExistsError(DealflowError):
    """Raised when a pending or accepted relationship already exists for the pair.

    Informational rather than fatal: the UI should refresh status and show it.
    """

    pass


class NotFoundError(DealflowError):
    """Raised when a transition references a relationship or handle that doesn't exist."""

    pass


class NotAuthorizedError(DealflowError):
    """Raised when the wrong party attempts a transition (e.g. initiator accepting)."""

    pass


class SelfTargetError(DealflowError):
    """Raised when an account targets itself. Rejected before any remote call."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__("You cannot send a connection request to yourself")


class RemoteUnavailableError(DealflowError):
    """Raised when the remote service or its transport fails."""

    retryable = True


class StaleStatusError(RemoteUnavailableError):
    """Raised when a mutation succeeded remotely but the follow-up re-read failed."""

    pass


class SessionClosedError(DealflowError):
    """Raised when a torn-down session is used again."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Session for account '{account_id}' has been torn down")
