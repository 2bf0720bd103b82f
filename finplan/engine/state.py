# engine/state.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Set

from ..data_model import AccountInput


@dataclass
class SimulationState:
    """Running balances for one projection run.

    Created by the engine at the start of a run and mutated year over year;
    never handed to callers. The withdrawal solver works on ``copy()``s.
    """

    account_values: Dict[str, float] = field(default_factory=dict)
    cost_basis: Dict[str, float] = field(default_factory=dict)
    sold_properties: Set[str] = field(default_factory=set)

    @classmethod
    def initial(cls, accounts: Iterable[AccountInput]) -> "SimulationState":
        state = cls()
        for acc in accounts:
            state.account_values[acc.account_id] = acc.current_value
            if acc.is_cgt_eligible():
                state.cost_basis[acc.account_id] = acc.initial_cost_basis()
        return state

    def copy(self) -> "SimulationState":
        return SimulationState(
            account_values=dict(self.account_values),
            cost_basis=dict(self.cost_basis),
            sold_properties=set(self.sold_properties),
        )

    def value(self, account_id: str) -> float:
        return self.account_values.get(account_id, 0.0)

    def is_sold(self, account_id: str) -> bool:
        return account_id in self.sold_properties

    def mark_sold(self, account_id: str) -> None:
        self.account_values[account_id] = 0.0
        self.cost_basis[account_id] = 0.0
        self.sold_properties.add(account_id)

    def total(self) -> float:
        return sum(self.account_values.values())


@dataclass
class ExclusionLedger:
    """Per-member CGT annual exclusion consumed so far in one tax year.

    Property sales and withdrawals in the same year draw on the same budget.
    """

    annual_exclusion: float
    used: Dict[str, float] = field(default_factory=dict)

    def used_by(self, member_id: str) -> float:
        return self.used.get(member_id, 0.0)

    def remaining(self, member_id: str) -> float:
        return max(0.0, self.annual_exclusion - self.used_by(member_id))

    def consume(self, member_id: str, amount: float) -> None:
        if amount > 0:
            self.used[member_id] = self.used_by(member_id) + amount
