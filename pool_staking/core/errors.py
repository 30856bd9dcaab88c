"""Error taxonomy for the staking ledger.

Every rejection is raised before any ledger state is touched, so callers can
treat any ``LedgerError`` as "nothing happened".
"""


class LedgerError(Exception):
    """Base class for all ledger rejections."""


class AuthorizationError(LedgerError):
    """Caller lacks the role the operation requires."""


class NotFoundError(LedgerError):
    """An identifier does not reference an existing record."""


class PoolNotFoundError(NotFoundError):
    pass


class StakeNotFoundError(NotFoundError):
    pass


class RequestNotFoundError(NotFoundError):
    pass


class InvalidStateError(LedgerError):
    """A status precondition was not met."""


class PoolInactiveError(InvalidStateError):
    pass


class ReentrancyError(InvalidStateError):
    """A mutating call was made while another one is still executing."""


class LedgerCorruptionError(InvalidStateError):
    """A request and its stake record disagree about their shared state."""


class PolicyViolationError(LedgerError):
    """Input is well-formed but breaks a ledger rule."""


class BelowMinimumStakeError(PolicyViolationError):
    pass


class LockPeriodActiveError(PolicyViolationError):
    pass


class InvalidPoolConfigError(PolicyViolationError):
    pass


class ValueMismatchError(PolicyViolationError):
    """Attached native value does not match what the operation expects."""


class InsufficientValueError(PolicyViolationError):
    """Attached native value does not cover the settlement."""


class EmptyBatchError(PolicyViolationError):
    pass


class InvalidConfigError(PolicyViolationError):
    pass


class OffsetOutOfRangeError(PolicyViolationError):
    pass


class TransferError(LedgerError):
    """The value-transfer collaborator refused or failed a transfer."""


class InsufficientFundsError(TransferError):
    pass
