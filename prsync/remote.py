"""Remote record types and wire normalization.

Converts between Portfolio Report API payloads and the dataclasses the
sync engine works with. Handles currency conversion (minor units <-> decimal
strings), share quantities, date parsing and field mapping.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from prsync.exceptions import MalformedRemoteRecord

# Amounts are stored in hundredths locally
MINOR_UNITS = 100


@dataclass
class RemotePortfolio:
    id: int | None
    name: str
    note: str | None = None
    base_currency_code: str | None = None


@dataclass
class RemoteSecurity:
    uuid: str
    name: str
    currency_code: str
    isin: str | None = None
    wkn: str | None = None
    symbol: str | None = None
    active: bool = True
    note: str | None = None


@dataclass
class RemoteAccount:
    uuid: str
    type: str  # "deposit" or "securities"
    name: str
    currency_code: str | None = None
    active: bool = True
    note: str | None = None
    reference_account_uuid: str | None = None


@dataclass
class RemoteUnit:
    kind: str  # "base", "fee" or "tax"
    amount: int
    currency_code: str


@dataclass
class RemoteTransaction:
    uuid: str
    account_uuid: str
    type: str
    date_time: datetime
    note: str | None = None
    security_uuid: str | None = None
    shares: Decimal | None = None
    partner_transaction_uuid: str | None = None
    units: list[RemoteUnit] = field(default_factory=list)

    def add_unit(self, kind: str, amount: int, currency_code: str) -> None:
        self.units.append(RemoteUnit(kind, amount, currency_code))

    def without_partner(self) -> "RemoteTransaction":
        """Return a copy that does not reference its partner."""
        stripped = copy.deepcopy(self)
        stripped.partner_transaction_uuid = None
        return stripped


def amount_to_wire(amount: int) -> str:
    """Convert minor units to a two-place decimal string (10000 -> "100.00")."""
    return str((Decimal(amount) / MINOR_UNITS).quantize(Decimal("0.01")))


def amount_from_wire(value: Any) -> int:
    """Convert a decimal string or number to minor units ("100.00" -> 10000).

    Raises:
        MalformedRemoteRecord: If the value is not a number
    """
    try:
        return int((Decimal(str(value)) * MINOR_UNITS).to_integral_value())
    except (InvalidOperation, ValueError) as e:
        raise MalformedRemoteRecord(f"Invalid amount: {value!r}") from e


def _shares_from_wire(value: Any) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise MalformedRemoteRecord(f"Invalid shares: {value!r}") from e


def _datetime_from_wire(value: Any) -> datetime:
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as e:
        raise MalformedRemoteRecord(f"Invalid datetime: {value!r}") from e


def _require(payload: Any, *keys: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise MalformedRemoteRecord(
            f"Expected object, got {type(payload).__name__}"
        )
    missing = [key for key in keys if key not in payload]
    if missing:
        raise MalformedRemoteRecord(f"Missing fields {missing} in {payload!r}")
    return payload


def portfolio_from_wire(payload: Any) -> RemotePortfolio:
    data = _require(payload, "id", "name")
    return RemotePortfolio(
        id=data["id"],
        name=data["name"],
        note=data.get("note"),
        base_currency_code=data.get("baseCurrencyCode"),
    )


def portfolio_to_wire(portfolio: RemotePortfolio) -> dict[str, Any]:
    return {
        "name": portfolio.name,
        "note": portfolio.note,
        "baseCurrencyCode": portfolio.base_currency_code,
    }


def security_from_wire(payload: Any) -> RemoteSecurity:
    data = _require(payload, "uuid")
    return RemoteSecurity(
        uuid=data["uuid"],
        name=data.get("name", ""),
        currency_code=data.get("currencyCode"),
        isin=data.get("isin"),
        wkn=data.get("wkn"),
        symbol=data.get("symbol"),
        active=data.get("active", True),
        note=data.get("note"),
    )


def security_to_wire(security: RemoteSecurity) -> dict[str, Any]:
    return {
        "uuid": security.uuid,
        "name": security.name,
        "currencyCode": security.currency_code,
        "isin": security.isin,
        "wkn": security.wkn,
        "symbol": security.symbol,
        "active": security.active,
        "note": security.note,
    }


def account_from_wire(payload: Any) -> RemoteAccount:
    data = _require(payload, "uuid", "type")
    return RemoteAccount(
        uuid=data["uuid"],
        type=data["type"],
        name=data.get("name", ""),
        currency_code=data.get("currencyCode"),
        active=data.get("active", True),
        note=data.get("note"),
        reference_account_uuid=data.get("referenceAccountUuid"),
    )


def account_to_wire(account: RemoteAccount) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "uuid": account.uuid,
        "type": account.type,
        "name": account.name,
        "currencyCode": account.currency_code,
        "active": account.active,
        "note": account.note,
    }
    # Only securities accounts settle through a reference account
    if account.type == "securities":
        payload["referenceAccountUuid"] = account.reference_account_uuid
    return payload


def transaction_from_wire(payload: Any) -> RemoteTransaction:
    data = _require(payload, "uuid", "accountUuid", "type", "datetime")
    units = data.get("units") or []
    if not isinstance(units, list):
        raise MalformedRemoteRecord(f"Invalid units for transaction {data['uuid']}")

    transaction = RemoteTransaction(
        uuid=data["uuid"],
        account_uuid=data["accountUuid"],
        type=data["type"],
        date_time=_datetime_from_wire(data["datetime"]),
        note=data.get("note"),
        security_uuid=data.get("portfolioSecurityUuid"),
        shares=_shares_from_wire(data.get("shares")),
        partner_transaction_uuid=data.get("partnerTransactionUuid"),
    )
    for unit in units:
        unit_data = _require(unit, "type", "amount", "currencyCode")
        transaction.add_unit(
            unit_data["type"],
            amount_from_wire(unit_data["amount"]),
            unit_data["currencyCode"],
        )
    return transaction


def transaction_to_wire(transaction: RemoteTransaction) -> dict[str, Any]:
    return {
        "uuid": transaction.uuid,
        "accountUuid": transaction.account_uuid,
        "type": transaction.type,
        "datetime": transaction.date_time.isoformat(),
        "note": transaction.note,
        "portfolioSecurityUuid": transaction.security_uuid,
        "shares": str(transaction.shares) if transaction.shares is not None else None,
        "partnerTransactionUuid": transaction.partner_transaction_uuid,
        "units": [
            {
                "type": unit.kind,
                "amount": amount_to_wire(unit.amount),
                "currencyCode": unit.currency_code,
            }
            for unit in transaction.units
        ],
    }


class EntityKind(Enum):
    """Entity collections kept under a remote portfolio.

    The value is the URL path segment of the collection.
    """

    SECURITY = "securities"
    ACCOUNT = "accounts"
    TRANSACTION = "transactions"

    @property
    def codec(self):
        return _CODECS[self]

    def from_wire(self, payload: Any):
        return self.codec[0](payload)

    def to_wire(self, entity) -> dict[str, Any]:
        return self.codec[1](entity)


_CODECS = {
    EntityKind.SECURITY: (security_from_wire, security_to_wire),
    EntityKind.ACCOUNT: (account_from_wire, account_to_wire),
    EntityKind.TRANSACTION: (transaction_from_wire, transaction_to_wire),
}


def normalize_listing(kind: EntityKind, api_response: Any) -> list:
    """Normalize a collection listing to remote records.

    Raises:
        MalformedRemoteRecord: If the response is not a list of records
    """
    if not isinstance(api_response, list):
        raise MalformedRemoteRecord(
            f"Expected list of {kind.value}, got {type(api_response).__name__}"
        )
    return [kind.from_wire(item) for item in api_response]
