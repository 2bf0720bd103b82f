from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, List, Mapping

from .base import as_bool, as_float, extract_value


@dataclass(frozen=True)
class MemberConfig:
    member_id: str
    name: str
    date_of_birth: date
    retirement_age: int

    @property
    def birth_year(self) -> int:
        return self.date_of_birth.year

    @property
    def retirement_year(self) -> int:
        return self.birth_year + self.retirement_age

    def age_in(self, year: int) -> int:
        return year - self.birth_year

    def is_retired_in(self, year: int) -> bool:
        return year >= self.retirement_year


@dataclass(frozen=True)
class FamilySettings:
    reinvest_surplus_pre_retirement: bool = False
    reinvest_surplus_post_retirement: bool = False
    bracket_inflation_rate_pct: float = 2.0

    @property
    def bracket_inflation_rate(self) -> float:
        return self.bracket_inflation_rate_pct / 100.0

    def reinvests(self, any_retired: bool) -> bool:
        if any_retired:
            return self.reinvest_surplus_post_retirement
        return self.reinvest_surplus_pre_retirement


@dataclass(frozen=True)
class WithdrawalOrderEntry:
    account_id: str
    priority: int


def _parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def records_to_members(rows: Iterable[Mapping[str, Any]]) -> List[MemberConfig]:
    members: List[MemberConfig] = []
    for index, row in enumerate(rows or []):
        dob = extract_value(row, "dateOfBirth", "date_of_birth")
        if dob is None:
            continue
        member_id = str(extract_value(row, "memberId", "member_id", "id", default=f"member-{index + 1}"))
        members.append(
            MemberConfig(
                member_id=member_id,
                name=str(extract_value(row, "name", "firstName", default=member_id)),
                date_of_birth=_parse_date(dob),
                retirement_age=int(as_float(extract_value(row, "retirementAge", "retirement_age"), 65.0)),
            )
        )
    return members


def record_to_settings(row: Mapping[str, Any] | None, default_bracket_inflation_pct: float = 2.0) -> FamilySettings:
    row = row or {}
    return FamilySettings(
        reinvest_surplus_pre_retirement=as_bool(
            extract_value(row, "reinvestSurplusPreRetirement", "reinvest_surplus_pre_retirement", default=False)
        ),
        reinvest_surplus_post_retirement=as_bool(
            extract_value(row, "reinvestSurplusPostRetirement", "reinvest_surplus_post_retirement", default=False)
        ),
        bracket_inflation_rate_pct=as_float(
            extract_value(row, "bracketInflationRatePct", "bracket_inflation_rate_pct"),
            default_bracket_inflation_pct,
        ),
    )


def records_to_withdrawal_order(rows: Iterable[Mapping[str, Any]]) -> List[WithdrawalOrderEntry]:
    entries: List[WithdrawalOrderEntry] = []
    for row in rows or []:
        account_id = extract_value(row, "accountId", "account_id")
        if account_id is None:
            continue
        entries.append(
            WithdrawalOrderEntry(
                account_id=str(account_id),
                priority=int(as_float(extract_value(row, "priority"), 999.0)),
            )
        )
    return entries
