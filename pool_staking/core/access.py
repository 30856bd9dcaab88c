"""Owner/manager role table."""
from typing import Iterable, List, Optional, Set
from loguru import logger

from .errors import AuthorizationError, InvalidConfigError


class AccessControl:
    """Single owner plus a set of managers.

    The owner grants and revokes manager status. Ownership itself is fixed
    for the lifetime of the ledger and is independent of being a manager.
    """

    def __init__(self, owner: str, managers: Optional[Iterable[str]] = None):
        if not owner:
            raise InvalidConfigError("Ledger owner must be a non-empty principal")
        self.owner = owner
        self.managers: Set[str] = set(managers) if managers is not None else {owner}

    def is_manager(self, principal: str) -> bool:
        return principal in self.managers

    def require_manager(self, caller: str) -> None:
        if caller not in self.managers:
            logger.warning(f"Rejected manager-only call from {caller}")
            raise AuthorizationError(f"{caller} is not a manager")

    def require_owner(self, caller: str) -> None:
        if caller != self.owner:
            logger.warning(f"Rejected owner-only call from {caller}")
            raise AuthorizationError(f"{caller} is not the owner")

    def set_manager(self, principal: str, is_manager: bool) -> bool:
        """Grant or revoke manager status. Returns whether anything changed."""
        if not principal:
            raise InvalidConfigError("Manager must be a non-empty principal")
        before = principal in self.managers
        if is_manager:
            self.managers.add(principal)
        else:
            self.managers.discard(principal)
        return before != is_manager

    def list_managers(self) -> List[str]:
        return sorted(self.managers)
