"""Household finance snapshot and its JSON representation.

The :class:`HouseholdFinances` value is the single root aggregate synchronized
between the local cache and the cloud. Every entity is a frozen dataclass and
every collection a tuple: a new version of the snapshot is made with
:func:`dataclasses.replace`, never by mutating the current one.

On disk and in the cloud the snapshot is one JSON document using camelCase keys
(``updatedAt``, ``sharedGoals``...). Unknown keys are ignored when reading and
every field, including defaulted ones, is written when saving.
"""
import dataclasses
import enum
import json
import logging
import math
import time
import typing
import uuid
from typing import Any, Callable, Dict, Optional, Tuple, Type, TypeVar

DEFAULT_HOUSEHOLD_NAME: str = 'Our Household'
DEFAULT_MEMBER_COLOR: int = 0xFF4BB487
DEFAULT_OVERPAYMENT_ALLOWANCE: float = 10.0

T = TypeVar('T')


def now_millis() -> int:
    """Return the current wall-clock time as epoch milliseconds."""
    return time.time_ns() // 1_000_000


def new_id() -> str:
    """Return a fresh random entity id."""
    return str(uuid.uuid4())


def to_camel(name: str) -> str:
    """Convert a snake_case attribute name to its camelCase JSON key.

    Args:
        name: Attribute name, e.g. ``'updated_at'``.

    Returns:
        str: The JSON key, e.g. ``'updatedAt'``.
    """
    head, *tail = name.split('_')
    return head + ''.join(part[:1].upper() + part[1:] for part in tail)


def display_name(member: enum.Enum) -> str:
    """Human-readable label of an enum member, e.g. ``EMERGENCY_FUND`` -> ``Emergency Fund``."""
    return member.value.replace('_', ' ').title()


class OutgoingCategory(enum.StrEnum):
    """Categories of a monthly outgoing."""
    BILLS = 'BILLS'
    GROCERIES = 'GROCERIES'
    TRANSPORT = 'TRANSPORT'
    ENTERTAINMENT = 'ENTERTAINMENT'
    SUBSCRIPTIONS = 'SUBSCRIPTIONS'
    OTHER = 'OTHER'


class AccountType(enum.StrEnum):
    """UK savings and investment account wrappers."""
    CURRENT_ACCOUNT = 'CURRENT_ACCOUNT'
    EASY_ACCESS = 'EASY_ACCESS'
    NOTICE_ACCOUNT = 'NOTICE_ACCOUNT'
    FIXED_TERM = 'FIXED_TERM'
    REGULAR_SAVER = 'REGULAR_SAVER'
    CASH_ISA = 'CASH_ISA'
    STOCKS_SHARES_ISA = 'STOCKS_SHARES_ISA'
    LIFETIME_ISA = 'LIFETIME_ISA'
    JUNIOR_ISA = 'JUNIOR_ISA'
    SIPP = 'SIPP'
    WORKPLACE_PENSION = 'WORKPLACE_PENSION'
    GENERAL_INVESTMENT = 'GENERAL_INVESTMENT'
    PREMIUM_BONDS = 'PREMIUM_BONDS'
    CRYPTO = 'CRYPTO'
    OTHER = 'OTHER'


# Savings that can be withdrawn without notice or penalty
EASY_ACCESS_TYPES: frozenset = frozenset({
    AccountType.CURRENT_ACCOUNT,
    AccountType.EASY_ACCESS,
    AccountType.CASH_ISA,
    AccountType.PREMIUM_BONDS,
})


class AssetClass(enum.StrEnum):
    """What an investment holds."""
    STOCKS = 'STOCKS'
    BONDS = 'BONDS'
    MIXED = 'MIXED'
    PROPERTY = 'PROPERTY'
    CASH = 'CASH'
    CRYPTO = 'CRYPTO'
    COMMODITIES = 'COMMODITIES'
    OTHER = 'OTHER'


class InvestmentFrequency(enum.StrEnum):
    """How often a contribution is paid into an investment."""
    ONE_TIME = 'ONE_TIME'
    WEEKLY = 'WEEKLY'
    MONTHLY = 'MONTHLY'
    QUARTERLY = 'QUARTERLY'
    ANNUALLY = 'ANNUALLY'


# Multiplier that turns one contribution into its monthly equivalent
MONTHLY_FACTOR: Dict[InvestmentFrequency, float] = {
    InvestmentFrequency.ONE_TIME: 0.0,
    InvestmentFrequency.WEEKLY: 52.0 / 12.0,
    InvestmentFrequency.MONTHLY: 1.0,
    InvestmentFrequency.QUARTERLY: 1.0 / 3.0,
    InvestmentFrequency.ANNUALLY: 1.0 / 12.0,
}


class GoalCategory(enum.StrEnum):
    """Categories of a shared savings goal."""
    EMERGENCY_FUND = 'EMERGENCY_FUND'
    HOLIDAY = 'HOLIDAY'
    HOME = 'HOME'
    CAR = 'CAR'
    WEDDING = 'WEDDING'
    EDUCATION = 'EDUCATION'
    RETIREMENT = 'RETIREMENT'
    OTHER = 'OTHER'


class MortgageType(enum.StrEnum):
    """Repayment structure of a mortgage."""
    REPAYMENT = 'REPAYMENT'
    INTEREST_ONLY = 'INTEREST_ONLY'
    PART_AND_PART = 'PART_AND_PART'


@dataclasses.dataclass(frozen=True)
class Outgoing:
    """A recurring monthly expense."""
    id: str = dataclasses.field(default_factory=new_id)
    name: str = ''
    amount: float = 0.0
    category: OutgoingCategory = OutgoingCategory.OTHER
    custom_category: Optional[str] = None

    @property
    def display_category(self) -> str:
        if self.category == OutgoingCategory.OTHER and self.custom_category:
            return self.custom_category
        return display_name(self.category)


@dataclasses.dataclass(frozen=True)
class SavingsAccount:
    id: str = dataclasses.field(default_factory=new_id)
    name: str = ''
    provider: str = ''
    balance: float = 0.0
    interest_rate: float = 0.0
    account_type: AccountType = AccountType.EASY_ACCESS


@dataclasses.dataclass(frozen=True)
class HouseholdMember:
    """A person contributing income to the household.

    ``salary`` is the monthly take-home pay. ``color`` is an ARGB integer used
    to tell members apart in charts.
    """
    id: str = dataclasses.field(default_factory=new_id)
    name: str = ''
    salary: float = 0.0
    color: int = DEFAULT_MEMBER_COLOR
    outgoings: Tuple[Outgoing, ...] = ()
    savings: Tuple[SavingsAccount, ...] = ()

    @property
    def total_outgoings(self) -> float:
        return sum(o.amount for o in self.outgoings)

    @property
    def total_savings(self) -> float:
        return sum(s.balance for s in self.savings)

    @property
    def net_monthly(self) -> float:
        return self.salary - self.total_outgoings


@dataclasses.dataclass(frozen=True)
class Investment:
    """A fund or pension pot and the money paid into it."""
    id: str = dataclasses.field(default_factory=new_id)
    name: str = ''
    fund_name: str = ''
    provider: str = ''
    account_type: AccountType = AccountType.STOCKS_SHARES_ISA
    asset_class: AssetClass = AssetClass.STOCKS
    frequency: InvestmentFrequency = InvestmentFrequency.MONTHLY
    contribution_amount: float = 0.0
    current_value: float = 0.0
    total_contributed: float = 0.0
    owner_id: Optional[str] = None
    owner_name: Optional[str] = None
    is_for_kids: bool = False
    last_updated: int = 0

    @property
    def gain_loss(self) -> float:
        return self.current_value - self.total_contributed

    @property
    def gain_loss_percent(self) -> float:
        if self.total_contributed <= 0:
            return 0.0
        return self.gain_loss / self.total_contributed * 100.0

    @property
    def monthly_contribution(self) -> float:
        return self.contribution_amount * MONTHLY_FACTOR[self.frequency]

    @property
    def display_frequency(self) -> str:
        if self.frequency == InvestmentFrequency.ONE_TIME:
            return 'One-time'
        return display_name(self.frequency)


@dataclasses.dataclass(frozen=True)
class GoalContribution:
    member_id: Optional[str] = None
    member_name: Optional[str] = None
    amount: float = 0.0
    date: int = 0


@dataclasses.dataclass(frozen=True)
class SharedGoal:
    """A savings target the household contributes to together."""
    id: str = dataclasses.field(default_factory=new_id)
    name: str = ''
    target_amount: float = 0.0
    current_amount: float = 0.0
    category: GoalCategory = GoalCategory.OTHER
    custom_category: Optional[str] = None
    contributions: Tuple[GoalContribution, ...] = ()

    @property
    def display_category(self) -> str:
        if self.category == GoalCategory.OTHER and self.custom_category:
            return self.custom_category
        return display_name(self.category)

    @property
    def progress_percent(self) -> float:
        """Progress towards the target, clamped to 0-100."""
        if self.target_amount <= 0:
            return 0.0
        return max(0.0, min(100.0, self.current_amount / self.target_amount * 100.0))

    @property
    def remaining_amount(self) -> float:
        return max(0.0, self.target_amount - self.current_amount)

    def contribute(self, member: Optional[HouseholdMember], amount: float, date: Optional[int] = None) -> 'SharedGoal':
        """Return a copy of the goal with one more contribution recorded.

        Args:
            member: The contributing member, or None for an anonymous contribution.
            amount: Amount paid in.
            date: Epoch milliseconds of the contribution. Defaults to now.

        Returns:
            SharedGoal: The updated goal.
        """
        contribution = GoalContribution(
            member_id=member.id if member else None,
            member_name=member.name if member else None,
            amount=amount,
            date=now_millis() if date is None else date,
        )
        return dataclasses.replace(
            self,
            current_amount=self.current_amount + amount,
            contributions=self.contributions + (contribution,),
        )


@dataclasses.dataclass(frozen=True)
class MortgageInfo:
    provider: str = ''
    property_value: float = 0.0
    purchase_price: float = 0.0
    original_mortgage_amount: float = 0.0
    remaining_balance: float = 0.0
    monthly_payment: float = 0.0
    interest_rate: float = 0.0
    mortgage_type: MortgageType = MortgageType.REPAYMENT
    deal_description: str = ''
    fixed_until: Optional[int] = None
    term_remaining_months: int = 0
    total_term_months: int = 0
    overpayment_allowance_percent: float = DEFAULT_OVERPAYMENT_ALLOWANCE
    owners: Tuple[str, ...] = ()
    notes: str = ''

    @property
    def equity(self) -> float:
        return self.property_value - self.remaining_balance

    @property
    def equity_percent(self) -> float:
        if self.property_value <= 0:
            return 0.0
        return self.equity / self.property_value * 100.0

    @property
    def term_remaining_years(self) -> int:
        return self.term_remaining_months // 12

    @property
    def term_remaining_extra_months(self) -> int:
        return self.term_remaining_months % 12

    @property
    def annual_overpayment_allowance(self) -> float:
        return self.remaining_balance * self.overpayment_allowance_percent / 100.0


def _upsert(items: Tuple[T, ...], item: T) -> Tuple[T, ...]:
    """Replace the entry sharing ``item.id``, or append ``item``."""
    if any(i.id == item.id for i in items):
        return tuple(item if i.id == item.id else i for i in items)
    return items + (item,)


def _remove(items: Tuple[T, ...], item_id: str) -> Tuple[T, ...]:
    return tuple(i for i in items if i.id != item_id)


@dataclasses.dataclass(frozen=True)
class HouseholdFinances:
    """The snapshot: all financial data of one household.

    ``updated_at`` is owned by :class:`WealthMate.core.sync.SyncCoordinator`,
    which stamps it on every mutation. It is the clock compared when the local
    and cloud copies are reconciled.
    """
    id: str = dataclasses.field(default_factory=new_id)
    name: str = DEFAULT_HOUSEHOLD_NAME
    members: Tuple[HouseholdMember, ...] = ()
    shared_outgoings: Tuple[Outgoing, ...] = ()
    shared_accounts: Tuple[SavingsAccount, ...] = ()
    shared_goals: Tuple[SharedGoal, ...] = ()
    investments: Tuple[Investment, ...] = ()
    mortgage: Optional[MortgageInfo] = None
    custom_outgoing_categories: Tuple[str, ...] = ()
    custom_goal_categories: Tuple[str, ...] = ()
    custom_investment_categories: Tuple[str, ...] = ()
    created_at: int = dataclasses.field(default_factory=now_millis)
    updated_at: int = 0

    # Income and outgoings

    @property
    def total_household_income(self) -> float:
        return sum(m.salary for m in self.members)

    @property
    def total_outgoings(self) -> float:
        return sum(m.total_outgoings for m in self.members) + sum(o.amount for o in self.shared_outgoings)

    @property
    def mortgage_payment(self) -> float:
        return self.mortgage.monthly_payment if self.mortgage else 0.0

    @property
    def net_monthly_household(self) -> float:
        return self.total_household_income - self.total_outgoings - self.mortgage_payment

    # Savings

    @property
    def all_savings(self) -> Tuple[SavingsAccount, ...]:
        member_savings = tuple(s for m in self.members for s in m.savings)
        return member_savings + self.shared_accounts

    @property
    def total_savings(self) -> float:
        return sum(s.balance for s in self.all_savings)

    @property
    def easy_access_savings(self) -> float:
        return sum(s.balance for s in self.all_savings if s.account_type in EASY_ACCESS_TYPES)

    @property
    def locked_savings(self) -> float:
        return self.total_savings - self.easy_access_savings

    # Investments

    @property
    def total_portfolio_value(self) -> float:
        return sum(i.current_value for i in self.investments)

    @property
    def total_invested(self) -> float:
        return sum(i.total_contributed for i in self.investments)

    @property
    def total_gain_loss(self) -> float:
        return self.total_portfolio_value - self.total_invested

    @property
    def total_monthly_investments(self) -> float:
        return sum(i.monthly_contribution for i in self.investments)

    @property
    def kids_investments(self) -> Tuple[Investment, ...]:
        return tuple(i for i in self.investments if i.is_for_kids)

    # Lookups

    def get_member(self, member_id: str) -> Optional[HouseholdMember]:
        return next((m for m in self.members if m.id == member_id), None)

    # Transform helpers. Each returns a new snapshot.

    def with_member(self, member: HouseholdMember) -> 'HouseholdFinances':
        return dataclasses.replace(self, members=_upsert(self.members, member))

    def without_member(self, member_id: str) -> 'HouseholdFinances':
        return dataclasses.replace(self, members=_remove(self.members, member_id))

    def with_investment(self, investment: Investment) -> 'HouseholdFinances':
        return dataclasses.replace(self, investments=_upsert(self.investments, investment))

    def without_investment(self, investment_id: str) -> 'HouseholdFinances':
        return dataclasses.replace(self, investments=_remove(self.investments, investment_id))

    def with_goal(self, goal: SharedGoal) -> 'HouseholdFinances':
        return dataclasses.replace(self, shared_goals=_upsert(self.shared_goals, goal))

    def without_goal(self, goal_id: str) -> 'HouseholdFinances':
        return dataclasses.replace(self, shared_goals=_remove(self.shared_goals, goal_id))

    def with_outgoing(self, outgoing: Outgoing, member_id: Optional[str] = None) -> 'HouseholdFinances':
        """Add or replace an outgoing, on a member when ``member_id`` is given, else shared.

        Raises:
            KeyError: If ``member_id`` does not name a member.
        """
        if member_id is None:
            return dataclasses.replace(self, shared_outgoings=_upsert(self.shared_outgoings, outgoing))
        member = self.get_member(member_id)
        if member is None:
            raise KeyError(f'No member with id "{member_id}"')
        return self.with_member(dataclasses.replace(member, outgoings=_upsert(member.outgoings, outgoing)))

    def without_outgoing(self, outgoing_id: str) -> 'HouseholdFinances':
        """Remove an outgoing wherever it lives."""
        return dataclasses.replace(
            self,
            shared_outgoings=_remove(self.shared_outgoings, outgoing_id),
            members=tuple(
                dataclasses.replace(m, outgoings=_remove(m.outgoings, outgoing_id)) for m in self.members
            ),
        )

    def with_account(self, account: SavingsAccount, member_id: Optional[str] = None) -> 'HouseholdFinances':
        """Add or replace a savings account, on a member when ``member_id`` is given, else shared.

        Raises:
            KeyError: If ``member_id`` does not name a member.
        """
        if member_id is None:
            return dataclasses.replace(self, shared_accounts=_upsert(self.shared_accounts, account))
        member = self.get_member(member_id)
        if member is None:
            raise KeyError(f'No member with id "{member_id}"')
        return self.with_member(dataclasses.replace(member, savings=_upsert(member.savings, account)))

    def without_account(self, account_id: str) -> 'HouseholdFinances':
        return dataclasses.replace(
            self,
            shared_accounts=_remove(self.shared_accounts, account_id),
            members=tuple(
                dataclasses.replace(m, savings=_remove(m.savings, account_id)) for m in self.members
            ),
        )


def default_household() -> HouseholdFinances:
    """Return the snapshot used when nothing has been stored yet."""
    return HouseholdFinances(name=DEFAULT_HOUSEHOLD_NAME)


# Serialization

def _enum_fallback(cls: Type[enum.Enum]) -> enum.Enum:
    if 'OTHER' in cls.__members__:
        return cls['OTHER']
    return next(iter(cls))


def _decode_enum(cls: Type[enum.Enum], value: Any) -> enum.Enum:
    try:
        return cls(value)
    except ValueError:
        fallback = _enum_fallback(cls)
        logging.warning(f'Unknown {cls.__name__} value "{value}", using {fallback.value}.')
        return fallback


def _decode_value(tp: Any, value: Any) -> Any:
    """Convert a JSON value to the Python type annotated on a dataclass field.

    Raises:
        TypeError: If the value does not fit the annotated type.
    """
    origin = typing.get_origin(tp)

    if origin is typing.Union:
        if value is None:
            return None
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        return _decode_value(args[0], value)

    if origin is tuple:
        if not isinstance(value, list):
            raise TypeError(f'Expected a list, got {type(value).__name__}')
        item_tp = typing.get_args(tp)[0]
        return tuple(_decode_value(item_tp, v) for v in value)

    if dataclasses.is_dataclass(tp):
        return from_dict(tp, value)

    if isinstance(tp, type) and issubclass(tp, enum.Enum):
        return _decode_enum(tp, value)

    if tp is bool:
        if not isinstance(value, bool):
            raise TypeError(f'Expected a boolean, got {value!r}')
        return value

    if tp in (int, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f'Expected a number, got {value!r}')
        if isinstance(value, float) and not math.isfinite(value):
            raise TypeError(f'Expected a finite number, got {value!r}')
        return tp(value)

    if tp is str:
        if not isinstance(value, str):
            raise TypeError(f'Expected a string, got {value!r}')
        return value

    return value


def from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
    """Build a dataclass instance from its JSON object.

    Keys missing from ``data`` keep their defaults, unknown keys are ignored and
    a ``null`` on a non-optional field is treated as missing.

    Args:
        cls: The dataclass type to build.
        data: The decoded JSON object.

    Returns:
        An instance of ``cls``.

    Raises:
        TypeError: If ``data`` or one of its values has the wrong shape.
    """
    if not isinstance(data, dict):
        raise TypeError(f'Expected an object for {cls.__name__}, got {type(data).__name__}')

    hints = typing.get_type_hints(cls)
    kwargs: Dict[str, Any] = {}
    for field in dataclasses.fields(cls):
        key = to_camel(field.name)
        if key not in data:
            continue
        value = data[key]
        tp = hints[field.name]
        if value is None and typing.get_origin(tp) is not typing.Union:
            continue
        try:
            kwargs[field.name] = _decode_value(tp, value)
        except TypeError as ex:
            raise TypeError(f'{cls.__name__}.{key}: {ex}') from ex
    return cls(**kwargs)


def to_dict(obj: Any) -> Any:
    """Convert a dataclass (or a value nested in one) to JSON-compatible data."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {to_camel(f.name): to_dict(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, enum.Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [to_dict(v) for v in obj]
    return obj


def dumps(snapshot: HouseholdFinances) -> str:
    """Serialize a snapshot to its JSON document."""
    return json.dumps(to_dict(snapshot), indent=4, ensure_ascii=False)


def loads(text: str) -> HouseholdFinances:
    """Parse a JSON document into a snapshot.

    Raises:
        ValueError: If the text is not valid JSON or is nested too deeply to parse.
        TypeError: If the JSON does not describe a snapshot.
    """
    try:
        data = json.loads(text)
    except RecursionError as ex:
        raise ValueError('JSON document is nested too deeply') from ex
    return from_dict(HouseholdFinances, data)


Transform = Callable[[HouseholdFinances], HouseholdFinances]
