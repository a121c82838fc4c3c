"""External ledgers the market settles against.

The market only depends on the two protocols below. The in-memory versions
back the tests and the scenario runner; every method validates before it
mutates, so a refused call leaves the ledger untouched.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Protocol

from forecast_core.market.errors import LedgerError
from forecast_core.market.fixed_point import checked_add, checked_sub


class CollateralToken(Protocol):
    def balance_of(self, owner: str) -> int: ...

    def allowance(self, owner: str, spender: str) -> int: ...

    def approve(self, owner: str, spender: str, amount: int) -> None: ...

    def transfer(self, sender: str, to: str, amount: int) -> None: ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None: ...


class OutcomeTokenLedger(Protocol):
    def balance_of(self, holder: str, outcome: int) -> int: ...

    def mint(self, to: str, outcome: int, amount: int) -> None: ...

    def burn(self, holder: str, outcome: int, amount: int) -> None: ...

    def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> None: ...

    def is_approved_for_all(self, owner: str, operator: str) -> bool: ...


class InMemoryCollateralToken:
    """Fungible balance/allowance ledger."""

    def __init__(self, symbol: str = "COL") -> None:
        self.symbol = symbol
        self._balances: dict[str, int] = defaultdict(int)
        self._allowances: dict[tuple[str, str], int] = defaultdict(int)

    def mint(self, to: str, amount: int) -> None:
        self._balances[to] = checked_add(self._balances[to], amount)

    def balance_of(self, owner: str) -> int:
        return self._balances.get(owner, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        self._allowances[(owner, spender)] = amount

    def transfer(self, sender: str, to: str, amount: int) -> None:
        if self.balance_of(sender) < amount:
            raise LedgerError("INSUFFICIENT_BALANCE", owner=sender, amount=amount)
        self._balances[sender] = checked_sub(self._balances[sender], amount)
        self._balances[to] = checked_add(self._balances[to], amount)

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        if spender != owner and self.allowance(owner, spender) < amount:
            raise LedgerError("INSUFFICIENT_ALLOWANCE", owner=owner, spender=spender, amount=amount)
        if self.balance_of(owner) < amount:
            raise LedgerError("INSUFFICIENT_BALANCE", owner=owner, amount=amount)
        if spender != owner:
            self._allowances[(owner, spender)] -= amount
        self.transfer(owner, to, amount)


class InMemoryOutcomeLedger:
    """Multi-asset balances keyed by ``(holder, outcome)`` plus operator approvals."""

    def __init__(self) -> None:
        self._balances: dict[tuple[str, int], int] = defaultdict(int)
        self._operators: set[tuple[str, str]] = set()

    def balance_of(self, holder: str, outcome: int) -> int:
        return self._balances.get((holder, outcome), 0)

    def mint(self, to: str, outcome: int, amount: int) -> None:
        self._balances[(to, outcome)] = checked_add(self._balances[(to, outcome)], amount)

    def burn(self, holder: str, outcome: int, amount: int) -> None:
        if self.balance_of(holder, outcome) < amount:
            raise LedgerError("INSUFFICIENT_BALANCE", owner=holder, outcome=outcome, amount=amount)
        self._balances[(holder, outcome)] -= amount

    def transfer(self, sender: str, to: str, outcome: int, amount: int) -> None:
        self.burn(sender, outcome, amount)
        self.mint(to, outcome, amount)

    def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> None:
        if approved:
            self._operators.add((owner, operator))
        else:
            self._operators.discard((owner, operator))

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return (owner, operator) in self._operators
