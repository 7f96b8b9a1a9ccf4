"""Local ledger view.

In-memory representation of the local ledger that the sync engine reads:
securities, deposit accounts, securities portfolios and their transactions.
The engine never mutates these objects; they are either built directly
(tests, embedding applications) or loaded from the local SQLite database by
``prsync.store.load_ledger``.

Amounts are integers in minor units (hundredths), shares are Decimals.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union


class UnitType(Enum):
    """Monetary sub-units carried by a local transaction."""

    FEE = "FEE"
    TAX = "TAX"


class PortfolioTransactionType(Enum):
    DELIVERY_INBOUND = "DELIVERY_INBOUND"
    DELIVERY_OUTBOUND = "DELIVERY_OUTBOUND"
    BUY = "BUY"
    SELL = "SELL"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"


class AccountTransactionType(Enum):
    DEPOSIT = "DEPOSIT"
    REMOVAL = "REMOVAL"
    INTEREST = "INTEREST"
    INTEREST_CHARGE = "INTEREST_CHARGE"
    FEES = "FEES"
    FEES_REFUND = "FEES_REFUND"
    TAXES = "TAXES"
    TAX_REFUND = "TAX_REFUND"
    DIVIDENDS = "DIVIDENDS"
    BUY = "BUY"
    SELL = "SELL"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"


@dataclass
class Security:
    uuid: str
    name: str
    currency_code: str | None = None
    isin: str | None = None
    wkn: str | None = None
    symbol: str | None = None
    active: bool = True
    note: str | None = None


@dataclass(eq=False, kw_only=True)
class _Transaction:
    """Fields shared by portfolio and account transactions.

    ``cross_entry`` points at the paired transaction of the same economic
    event (buy/sell, transfer). Pairs reference each other, so the field is
    excluded from repr and comparison.
    """

    uuid: str
    date_time: datetime
    amount: int
    currency_code: str
    note: str | None = None
    units: dict[UnitType, int] = field(default_factory=dict)
    cross_entry: Optional["Transaction"] = field(
        default=None, repr=False, compare=False
    )

    def unit_sum(self, unit_type: UnitType) -> int:
        return self.units.get(unit_type, 0)


@dataclass(eq=False, kw_only=True)
class PortfolioTransaction(_Transaction):
    type: PortfolioTransactionType
    security: Security
    shares: Decimal


@dataclass(eq=False, kw_only=True)
class AccountTransaction(_Transaction):
    type: AccountTransactionType
    security: Security | None = None
    shares: Decimal | None = None


Transaction = Union[PortfolioTransaction, AccountTransaction]


@dataclass(eq=False)
class Account:
    uuid: str
    name: str
    currency_code: str
    active: bool = True
    note: str | None = None
    transactions: list[AccountTransaction] = field(default_factory=list)


@dataclass(eq=False)
class Portfolio:
    uuid: str
    name: str
    reference_account: Account
    active: bool = True
    note: str | None = None
    transactions: list[PortfolioTransaction] = field(default_factory=list)


def link(first: Transaction, second: Transaction) -> None:
    """Make two transactions each other's cross entry."""
    first.cross_entry = second
    second.cross_entry = first


@dataclass(eq=False)
class Ledger:
    """Read-only enumeration of the local ledger plus its property store.

    The ``properties`` mapping doubles as an in-memory property store so a
    ledger built in code can be synced without a database.
    """

    base_currency: str = "EUR"
    securities: list[Security] = field(default_factory=list)
    accounts: list[Account] = field(default_factory=list)
    portfolios: list[Portfolio] = field(default_factory=list)
    properties: dict[str, str] = field(default_factory=dict)

    def get_property(self, key: str) -> str | None:
        return self.properties.get(key)

    def set_property(self, key: str, value: str) -> None:
        self.properties[key] = value

    def portfolio_for_account(self, account: Account) -> Portfolio | None:
        """Return the first portfolio settling through ``account``."""
        for portfolio in self.portfolios:
            if portfolio.reference_account is account:
                return portfolio
        return None
