"""Conversion of local transactions to remote transaction records.

A local transaction carries a type, a gross amount and FEE/TAX sub-units, and
may be paired with a cross entry. The remote model instead decomposes every
record into signed ``base``/``fee``/``tax`` units (negative = outflow from the
owning account) and links paired records by uuid only.

Conversion is pure: the same local transaction, owner, ledger and hint always
yield equal records. Each local transaction type has exactly one handler.
"""

import logging
import uuid as uuid_lib

from prsync.ledger import (
    Account,
    AccountTransaction,
    AccountTransactionType,
    Ledger,
    Portfolio,
    PortfolioTransaction,
    PortfolioTransactionType,
    UnitType,
)
from prsync.remote import RemoteTransaction

logger = logging.getLogger(__name__)

# Namespace for uuids of synthetic portfolio-side records
SYNTHETIC_NAMESPACE = uuid_lib.UUID("5b0f6d7e-2f4c-4f3a-9a63-5c1e8e2a7d10")


class ConversionError(Exception):
    """Raised when a local transaction cannot be expressed remotely."""

    pass


def _partner_uuid(transaction) -> str:
    if transaction.cross_entry is None:
        raise ConversionError(
            f"{transaction.type.value} transaction {transaction.uuid} has no cross entry"
        )
    return transaction.cross_entry.uuid


def _add_charges(remote: RemoteTransaction, transaction, amount: int) -> int:
    """Add non-zero fee and tax units as outflows and fold them into ``amount``."""
    currency = transaction.currency_code
    fee = transaction.unit_sum(UnitType.FEE)
    tax = transaction.unit_sum(UnitType.TAX)
    if fee != 0:
        remote.add_unit("fee", -fee, currency)
        amount -= fee
    if tax != 0:
        remote.add_unit("tax", -tax, currency)
        amount -= tax
    return amount


# Portfolio side


def _delivery_inbound(remote, tx):
    remote.type = "SecuritiesOrder"
    remote.shares = tx.shares
    remote.add_unit("base", tx.amount, tx.currency_code)


def _delivery_outbound(remote, tx):
    remote.type = "SecuritiesOrder"
    remote.shares = -tx.shares
    remote.add_unit("base", -tx.amount, tx.currency_code)


def _buy(remote, tx):
    remote.type = "SecuritiesOrder"
    remote.shares = tx.shares
    remote.partner_transaction_uuid = _partner_uuid(tx)
    base = _add_charges(remote, tx, -tx.amount)
    remote.add_unit("base", base, tx.currency_code)


def _sell(remote, tx):
    remote.type = "SecuritiesOrder"
    remote.shares = -tx.shares
    remote.partner_transaction_uuid = _partner_uuid(tx)
    base = _add_charges(remote, tx, tx.amount)
    remote.add_unit("base", base, tx.currency_code)


def _securities_transfer_in(remote, tx):
    remote.type = "SecuritiesTransfer"
    remote.shares = tx.shares
    remote.partner_transaction_uuid = _partner_uuid(tx)
    remote.add_unit("base", -tx.amount, tx.currency_code)


def _securities_transfer_out(remote, tx):
    remote.type = "SecuritiesTransfer"
    remote.shares = -tx.shares
    remote.partner_transaction_uuid = _partner_uuid(tx)
    remote.add_unit("base", tx.amount, tx.currency_code)


PORTFOLIO_HANDLERS = {
    PortfolioTransactionType.DELIVERY_INBOUND: _delivery_inbound,
    PortfolioTransactionType.DELIVERY_OUTBOUND: _delivery_outbound,
    PortfolioTransactionType.BUY: _buy,
    PortfolioTransactionType.SELL: _sell,
    PortfolioTransactionType.TRANSFER_IN: _securities_transfer_in,
    PortfolioTransactionType.TRANSFER_OUT: _securities_transfer_out,
}


def convert_portfolio_transaction(
    transaction: PortfolioTransaction, portfolio: Portfolio
) -> RemoteTransaction:
    """Convert a portfolio transaction to its remote record."""
    remote = RemoteTransaction(
        uuid=transaction.uuid,
        account_uuid=portfolio.uuid,
        type="",
        date_time=transaction.date_time,
        note=transaction.note,
        security_uuid=transaction.security.uuid,
    )
    PORTFOLIO_HANDLERS[transaction.type](remote, transaction)
    return remote


# Account side
#
# Handlers receive the account-side record and a factory for the
# portfolio-side record of the same event. Only fees, taxes and dividends
# attributed to a security ask for the second record.


def _payment(remote, tx, paired):
    amount = -tx.amount if tx.type == AccountTransactionType.REMOVAL else tx.amount
    remote.type = "Payment"
    remote.add_unit("base", amount, tx.currency_code)


def _interest(remote, tx, paired):
    amount = tx.amount
    if tx.type == AccountTransactionType.INTEREST_CHARGE:
        amount = -amount
    remote.type = "DepositInterest"

    tax = tx.unit_sum(UnitType.TAX)
    if tax != 0:
        remote.add_unit("tax", -tax, tx.currency_code)
        amount += tax
    remote.add_unit("base", amount, tx.currency_code)


def _charge(deposit_type, securities_type, unit_kind, outflow_type):
    """Build the handler shared by fees and taxes."""

    def handler(remote, tx, paired):
        amount = -tx.amount if tx.type == outflow_type else tx.amount

        if tx.security is None:
            remote.type = deposit_type
            remote.add_unit(unit_kind, amount, tx.currency_code)
            return

        remote.type = securities_type
        remote.add_unit("base", amount, tx.currency_code)

        portfolio_side = paired()
        portfolio_side.type = securities_type
        portfolio_side.add_unit(unit_kind, amount, tx.currency_code)

    return handler


def _dividends(remote, tx, paired):
    if tx.security is None:
        raise ConversionError(f"Dividend transaction {tx.uuid} has no security")

    remote.type = "SecuritiesDividend"
    remote.add_unit("base", tx.amount, tx.currency_code)

    portfolio_side = paired()
    portfolio_side.type = "SecuritiesDividend"
    portfolio_side.shares = tx.shares
    # Charges were withheld from the gross dividend: the base unit carries
    # the gross amount so that all units sum to the booked net amount.
    base = tx.amount + tx.unit_sum(UnitType.FEE) + tx.unit_sum(UnitType.TAX)
    _add_charges(portfolio_side, tx, 0)
    portfolio_side.add_unit("base", base, tx.currency_code)


def _account_order(remote, tx, paired):
    amount = -tx.amount if tx.type == AccountTransactionType.BUY else tx.amount
    remote.type = "SecuritiesOrder"
    remote.add_unit("base", amount, tx.currency_code)
    remote.partner_transaction_uuid = _partner_uuid(tx)


def _currency_transfer_in(remote, tx, paired):
    remote.type = "CurrencyTransfer"
    remote.add_unit("base", tx.amount, tx.currency_code)
    remote.partner_transaction_uuid = _partner_uuid(tx)


def _currency_transfer_out(remote, tx, paired):
    remote.type = "CurrencyTransfer"
    remote.add_unit("base", -tx.amount, tx.currency_code)
    remote.partner_transaction_uuid = _partner_uuid(tx)


_fees = _charge("DepositFee", "SecuritiesFee", "fee", AccountTransactionType.FEES)
_taxes = _charge("DepositTax", "SecuritiesTax", "tax", AccountTransactionType.TAXES)

ACCOUNT_HANDLERS = {
    AccountTransactionType.DEPOSIT: _payment,
    AccountTransactionType.REMOVAL: _payment,
    AccountTransactionType.INTEREST: _interest,
    AccountTransactionType.INTEREST_CHARGE: _interest,
    AccountTransactionType.FEES: _fees,
    AccountTransactionType.FEES_REFUND: _fees,
    AccountTransactionType.TAXES: _taxes,
    AccountTransactionType.TAX_REFUND: _taxes,
    AccountTransactionType.DIVIDENDS: _dividends,
    AccountTransactionType.BUY: _account_order,
    AccountTransactionType.SELL: _account_order,
    AccountTransactionType.TRANSFER_IN: _currency_transfer_in,
    AccountTransactionType.TRANSFER_OUT: _currency_transfer_out,
}


def synthetic_uuid(transaction_uuid: str) -> str:
    """Stable uuid of the portfolio-side record paired with a transaction."""
    return str(uuid_lib.uuid5(SYNTHETIC_NAMESPACE, transaction_uuid))


def owning_portfolio(ledger: Ledger, account: Account) -> Portfolio:
    """Pick the portfolio that holds the security side of an account event.

    Prefers the portfolio whose reference account is ``account``. Otherwise
    falls back to the first portfolio of the ledger; that attribution may be
    wrong but is stable across runs.

    Raises:
        ConversionError: If the ledger has no portfolio at all
    """
    portfolio = ledger.portfolio_for_account(account)
    if portfolio is not None:
        return portfolio

    if not ledger.portfolios:
        raise ConversionError(
            f"No portfolio available for security transactions of account {account.uuid}"
        )

    fallback = ledger.portfolios[0]
    logger.warning(
        f"No portfolio uses account '{account.name}' as reference account, "
        f"attributing security transactions to portfolio '{fallback.name}'"
    )
    return fallback


def convert_account_transaction(
    transaction: AccountTransaction,
    account: Account,
    ledger: Ledger,
    partner_uuid_hint: str | None = None,
) -> list[RemoteTransaction]:
    """Convert an account transaction to one or two remote records.

    Args:
        transaction: Local account transaction
        account: Account owning the transaction
        ledger: Ledger used to find the owning portfolio of a second record
        partner_uuid_hint: uuid already used remotely for the portfolio-side
            record of this transaction, if any

    Returns:
        The account-side record, followed by the portfolio-side record for
        fees, taxes and dividends attributed to a security
    """
    remote = RemoteTransaction(
        uuid=transaction.uuid,
        account_uuid=account.uuid,
        type="",
        date_time=transaction.date_time,
        note=transaction.note,
    )
    records = [remote]

    def paired() -> RemoteTransaction:
        portfolio_side = RemoteTransaction(
            uuid=partner_uuid_hint or synthetic_uuid(transaction.uuid),
            account_uuid=owning_portfolio(ledger, account).uuid,
            type="",
            date_time=transaction.date_time,
            note=transaction.note,
            security_uuid=transaction.security.uuid,
            partner_transaction_uuid=remote.uuid,
        )
        remote.partner_transaction_uuid = portfolio_side.uuid
        records.append(portfolio_side)
        return portfolio_side

    ACCOUNT_HANDLERS[transaction.type](remote, transaction, paired)
    return records
