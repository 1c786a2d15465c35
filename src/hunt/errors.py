"""Errors raised by the game-state engine.

Every error carries a stable ``code`` and a message meant for the caller.
Engine functions raise them; ``hunt.procedures`` turns them into results.
"""


class HuntError(Exception):
    """Base class for all engine errors."""

    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(HuntError):
    """A referenced game, checkpoint, player or progress row is absent."""

    code = "not_found"


class Conflict(HuntError):
    """A uniqueness rule would be violated."""

    code = "conflict"


class DuplicateKey(Conflict):
    """The store refused a row whose key already exists."""

    code = "duplicate_key"


class InvalidState(HuntError):
    """Illegal lifecycle transition."""

    code = "invalid_state"


class GameNotActive(InvalidState):
    code = "game_not_active"


class CheckpointInactive(InvalidState):
    code = "checkpoint_inactive"


class InvalidArgument(HuntError):
    code = "invalid_argument"


class OutOfOrder(HuntError):
    """A checkpoint was claimed before all of its predecessors."""

    code = "out_of_order"

    def __init__(self, message: str, missing_order_index: int):
        super().__init__(message)
        self.missing_order_index = missing_order_index


class NotMember(HuntError):
    """The player never joined the game."""

    code = "not_member"
