"""
Per-account tower ledger.

Implements TowerTable[AccountId] -> TowerAccount
"""

from typing import Dict, List, Optional

from ..core.types import AccountId, TowerAccount


class TowerTable:
    """
    Mapping owner -> TowerAccount.

    Accounts are created on first write and never deleted. Note: do not rely on
    dict iteration order; `owners()` returns a sorted list for snapshots and
    hashing.
    """

    def __init__(self):
        self._towers: Dict[AccountId, TowerAccount] = {}

    def get(self, owner: AccountId) -> Optional[TowerAccount]:
        """Get the account for `owner`. Returns None if it was never created."""
        return self._towers.get(owner)

    def set(self, account: TowerAccount) -> None:
        """
        Store `account` under its owner, replacing any previous entry.

        Raises:
            TypeError: If `account` is not a TowerAccount
        """
        if not isinstance(account, TowerAccount):
            raise TypeError(f"expected TowerAccount, got {type(account).__name__}")
        self._towers[account.owner] = account

    def restore(self, owner: AccountId, account: Optional[TowerAccount]) -> None:
        """Put back a previous value; None removes an entry created since."""
        if account is None:
            self._towers.pop(owner, None)
        else:
            self.set(account)

    def owners(self) -> List[AccountId]:
        return sorted(self._towers)

    def get_all(self) -> Dict[AccountId, TowerAccount]:
        return dict(self._towers)

    def __contains__(self, owner: object) -> bool:
        return owner in self._towers

    def __len__(self) -> int:
        return len(self._towers)
