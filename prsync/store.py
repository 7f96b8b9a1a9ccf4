"""Loading the local ledger from the SQLite database.

``load_ledger`` builds the in-memory ``Ledger`` the sync engine reads;
``DatabasePropertyStore`` persists the remote portfolio id between runs.
"""

import logging
from datetime import datetime
from decimal import Decimal

from prsync.database import Database
from prsync.ledger import (
    Account,
    AccountTransaction,
    AccountTransactionType,
    Ledger,
    Portfolio,
    PortfolioTransaction,
    PortfolioTransactionType,
    Security,
    UnitType,
)
from prsync.models import (
    AccountRecord,
    PortfolioRecord,
    Property,
    SecurityRecord,
    TransactionRecord,
)

logger = logging.getLogger(__name__)

BASE_CURRENCY_KEY = "baseCurrency"
DEFAULT_BASE_CURRENCY = "EUR"


class LedgerIntegrityError(Exception):
    """Raised when stored rows reference entities that do not exist."""

    pass


class DatabasePropertyStore:
    """Property store backed by the ``properties`` table."""

    def __init__(self, database: Database):
        self.database = database

    def get_property(self, key: str) -> str | None:
        prop = Property.find_by_id(self.database, key)
        return prop.value if prop is not None else None

    def set_property(self, key: str, value: str) -> None:
        Property(self.database, key=key, value=value).save()


def _units(record: TransactionRecord) -> dict[UnitType, int]:
    units = {}
    if record.fee_amount:
        units[UnitType.FEE] = record.fee_amount
    if record.tax_amount:
        units[UnitType.TAX] = record.tax_amount
    return units


def _lookup(entities: dict, uuid: str | None, what: str, owner: str):
    if uuid is None:
        return None
    try:
        return entities[uuid]
    except KeyError:
        raise LedgerIntegrityError(f"{owner} references unknown {what} {uuid}") from None


def load_ledger(database: Database) -> Ledger:
    """Read securities, accounts, portfolios and transactions into a Ledger.

    Enumeration order is insertion order. Cross entries are resolved to
    object references between the paired transactions.

    Raises:
        LedgerIntegrityError: If a row references a missing entity
        SQLiteError: If a query fails
    """
    properties = DatabasePropertyStore(database)
    ledger = Ledger(
        base_currency=properties.get_property(BASE_CURRENCY_KEY) or DEFAULT_BASE_CURRENCY
    )

    securities = {}
    for record in SecurityRecord.all(database):
        security = Security(
            uuid=record.uuid,
            name=record.name,
            currency_code=record.currency_code,
            isin=record.isin,
            wkn=record.wkn,
            symbol=record.symbol,
            active=not record.retired,
            note=record.note,
        )
        securities[security.uuid] = security
        ledger.securities.append(security)

    accounts = {}
    for record in AccountRecord.all(database):
        account = Account(
            uuid=record.uuid,
            name=record.name,
            currency_code=record.currency_code,
            active=not record.retired,
            note=record.note,
        )
        accounts[account.uuid] = account
        ledger.accounts.append(account)

    for record in PortfolioRecord.all(database):
        ledger.portfolios.append(
            Portfolio(
                uuid=record.uuid,
                name=record.name,
                reference_account=_lookup(
                    accounts, record.reference_account_uuid, "account", f"Portfolio {record.uuid}"
                ),
                active=not record.retired,
                note=record.note,
            )
        )

    owners = {**accounts, **{p.uuid: p for p in ledger.portfolios}}
    transactions = {}
    cross_entries = []
    for record in TransactionRecord.all(database):
        owner = _lookup(owners, record.owner_uuid, "owner", f"Transaction {record.uuid}")
        common = dict(
            uuid=record.uuid,
            date_time=datetime.fromisoformat(record.date_time),
            amount=record.amount,
            currency_code=record.currency_code,
            note=record.note,
            units=_units(record),
            security=_lookup(
                securities, record.security_uuid, "security", f"Transaction {record.uuid}"
            ),
        )
        shares = Decimal(record.shares) if record.shares is not None else None

        if isinstance(owner, Portfolio):
            transaction = PortfolioTransaction(
                type=PortfolioTransactionType(record.type), shares=shares, **common
            )
        else:
            transaction = AccountTransaction(
                type=AccountTransactionType(record.type), shares=shares, **common
            )
        owner.transactions.append(transaction)
        transactions[transaction.uuid] = transaction
        if record.cross_entry_uuid is not None:
            cross_entries.append((transaction, record.cross_entry_uuid))

    for transaction, partner_uuid in cross_entries:
        transaction.cross_entry = _lookup(
            transactions, partner_uuid, "cross entry", f"Transaction {transaction.uuid}"
        )

    logger.info(
        f"Loaded ledger: {len(ledger.securities)} securities, "
        f"{len(ledger.accounts)} accounts, {len(ledger.portfolios)} portfolios, "
        f"{len(transactions)} transactions"
    )
    return ledger
