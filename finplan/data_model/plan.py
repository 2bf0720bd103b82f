# data_model/plan.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple, Union

from .accounts import AccountInput
from .cashflow import CapitalExpenseInput, ExpenseInput, IncomeInput
from .members import FamilySettings, MemberConfig, WithdrawalOrderEntry


@dataclass(frozen=True)
class LegacyMode:
    """Growth/income/expense projection only: no tax, withdrawals or reinvestment."""


@dataclass(frozen=True)
class HouseholdMode:
    """Tax-aware projection for a household with at least one member."""

    members: Tuple[MemberConfig, ...]
    settings: FamilySettings = field(default_factory=FamilySettings)
    withdrawal_order: Tuple[WithdrawalOrderEntry, ...] = ()

    def __post_init__(self) -> None:
        if not self.members:
            raise ValueError("HouseholdMode requires at least one member; use LegacyMode instead.")
        object.__setattr__(self, "members", tuple(self.members))
        object.__setattr__(self, "withdrawal_order", tuple(self.withdrawal_order))


ProjectionMode = Union[LegacyMode, HouseholdMode]


def mode_for_members(
    members: Sequence[MemberConfig],
    settings: FamilySettings | None = None,
    withdrawal_order: Sequence[WithdrawalOrderEntry] = (),
) -> ProjectionMode:
    if not members:
        return LegacyMode()
    return HouseholdMode(
        members=tuple(members),
        settings=settings or FamilySettings(),
        withdrawal_order=tuple(withdrawal_order),
    )


@dataclass
class ProjectionConfig:
    current_year: int
    target_year: int
    inflation_rate_pct: float = 0.0
    accounts: List[AccountInput] = field(default_factory=list)
    income: List[IncomeInput] = field(default_factory=list)
    expenses: List[ExpenseInput] = field(default_factory=list)
    capital_expenses: List[CapitalExpenseInput] = field(default_factory=list)
    mode: ProjectionMode = field(default_factory=LegacyMode)

    @property
    def members(self) -> Tuple[MemberConfig, ...]:
        if isinstance(self.mode, HouseholdMode):
            return self.mode.members
        return ()
