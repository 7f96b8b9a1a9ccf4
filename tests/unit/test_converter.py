"""Unit tests for transaction conversion."""

from decimal import Decimal

import pytest

from prsync.converter import (
    ACCOUNT_HANDLERS,
    PORTFOLIO_HANDLERS,
    ConversionError,
    convert_account_transaction,
    convert_portfolio_transaction,
    owning_portfolio,
    synthetic_uuid,
)
from prsync.ledger import (
    Account,
    AccountTransaction,
    AccountTransactionType,
    Ledger,
    Portfolio,
    PortfolioTransaction,
    PortfolioTransactionType,
    UnitType,
    link,
)
from prsync.remote import RemoteUnit
from tests.fixtures.ledgers import TRADE_DATE, buy_ledger, dividend_ledger, sample_security


def units_of(remote):
    return {unit.kind: unit.amount for unit in remote.units}


def account_tx(type_, amount=10000, **kwargs):
    return AccountTransaction(
        uuid=kwargs.pop("uuid", "tx-1"),
        type=type_,
        date_time=TRADE_DATE,
        amount=amount,
        currency_code="EUR",
        **kwargs,
    )


def portfolio_tx(type_, amount=10000, shares=Decimal(5), **kwargs):
    return PortfolioTransaction(
        uuid=kwargs.pop("uuid", "ptx-1"),
        type=type_,
        date_time=TRADE_DATE,
        security=sample_security(),
        shares=shares,
        amount=amount,
        currency_code="EUR",
        **kwargs,
    )


@pytest.fixture
def account():
    return Account(uuid="acc-1", name="Cash", currency_code="EUR")


@pytest.fixture
def portfolio(account):
    return Portfolio(uuid="pf-1", name="Depot", reference_account=account)


@pytest.fixture
def ledger(account, portfolio):
    return Ledger(accounts=[account], portfolios=[portfolio])


class TestDispatchTables:
    """Every local transaction type has a handler."""

    def test_all_portfolio_types_handled(self):
        assert set(PORTFOLIO_HANDLERS) == set(PortfolioTransactionType)

    def test_all_account_types_handled(self):
        assert set(ACCOUNT_HANDLERS) == set(AccountTransactionType)


class TestPortfolioTransactions:
    """Test conversion of portfolio-side transactions."""

    def test_buy_scenario_units_and_partner(self):
        """BUY 3 shares for 1800.00 EUR with 5.00 fee."""
        ledger = buy_ledger(fee=500)
        portfolio = ledger.portfolios[0]

        remote = convert_portfolio_transaction(portfolio.transactions[0], portfolio)

        assert remote.type == "SecuritiesOrder"
        assert remote.uuid == "tx-buy-pf"
        assert remote.account_uuid == "pf-1"
        assert remote.security_uuid == "sec-basf"
        assert remote.shares == 3
        assert remote.partner_transaction_uuid == "tx-buy-acc"
        assert remote.units == [
            RemoteUnit("fee", -500, "EUR"),
            RemoteUnit("base", -180500, "EUR"),
        ]

    def test_buy_with_fee_and_tax(self):
        ledger = buy_ledger(fee=700, tax=300)
        portfolio = ledger.portfolios[0]

        remote = convert_portfolio_transaction(portfolio.transactions[0], portfolio)

        assert units_of(remote) == {"fee": -700, "tax": -300, "base": -181000}
        assert {unit.currency_code for unit in remote.units} == {"EUR"}

    def test_buy_without_charges_has_only_base(self):
        ledger = buy_ledger(fee=0)
        portfolio = ledger.portfolios[0]

        remote = convert_portfolio_transaction(portfolio.transactions[0], portfolio)

        assert remote.units == [RemoteUnit("base", -180000, "EUR")]

    def test_sell_negates_shares(self, portfolio):
        tx = portfolio_tx(
            PortfolioTransactionType.SELL, units={UnitType.FEE: 200, UnitType.TAX: 100}
        )
        link(tx, account_tx(AccountTransactionType.SELL, uuid="acc-side"))

        remote = convert_portfolio_transaction(tx, portfolio)

        assert remote.shares == Decimal(-5)
        assert remote.partner_transaction_uuid == "acc-side"
        assert units_of(remote) == {"fee": -200, "tax": -100, "base": 9700}

    def test_delivery_inbound(self, portfolio):
        remote = convert_portfolio_transaction(
            portfolio_tx(PortfolioTransactionType.DELIVERY_INBOUND), portfolio
        )

        assert remote.type == "SecuritiesOrder"
        assert remote.shares == Decimal(5)
        assert remote.partner_transaction_uuid is None
        assert remote.units == [RemoteUnit("base", 10000, "EUR")]

    def test_delivery_outbound(self, portfolio):
        remote = convert_portfolio_transaction(
            portfolio_tx(PortfolioTransactionType.DELIVERY_OUTBOUND), portfolio
        )

        assert remote.shares == Decimal(-5)
        assert remote.units == [RemoteUnit("base", -10000, "EUR")]

    def test_securities_transfer_pair(self, account, portfolio):
        other = Portfolio(uuid="pf-2", name="Other", reference_account=account)
        outbound = portfolio_tx(PortfolioTransactionType.TRANSFER_OUT, uuid="out")
        inbound = portfolio_tx(PortfolioTransactionType.TRANSFER_IN, uuid="in")
        link(outbound, inbound)

        remote_out = convert_portfolio_transaction(outbound, portfolio)
        remote_in = convert_portfolio_transaction(inbound, other)

        assert remote_out.type == remote_in.type == "SecuritiesTransfer"
        assert remote_out.shares == Decimal(-5)
        assert remote_in.shares == Decimal(5)
        assert remote_out.units == [RemoteUnit("base", 10000, "EUR")]
        assert remote_in.units == [RemoteUnit("base", -10000, "EUR")]
        assert remote_out.partner_transaction_uuid == "in"
        assert remote_in.partner_transaction_uuid == "out"

    def test_buy_without_cross_entry_fails(self, portfolio):
        with pytest.raises(ConversionError, match="no cross entry"):
            convert_portfolio_transaction(portfolio_tx(PortfolioTransactionType.BUY), portfolio)


class TestAccountTransactions:
    """Test conversion of account-side transactions."""

    def test_deposit(self, account, ledger):
        records = convert_account_transaction(
            account_tx(AccountTransactionType.DEPOSIT), account, ledger
        )

        assert len(records) == 1
        assert records[0].type == "Payment"
        assert records[0].account_uuid == "acc-1"
        assert records[0].units == [RemoteUnit("base", 10000, "EUR")]

    def test_removal_flips_sign(self, account, ledger):
        (remote,) = convert_account_transaction(
            account_tx(AccountTransactionType.REMOVAL), account, ledger
        )
        assert remote.units == [RemoteUnit("base", -10000, "EUR")]

    def test_interest_extracts_tax(self, account, ledger):
        (remote,) = convert_account_transaction(
            account_tx(AccountTransactionType.INTEREST, units={UnitType.TAX: 250}),
            account,
            ledger,
        )
        assert remote.type == "DepositInterest"
        assert remote.units == [
            RemoteUnit("tax", -250, "EUR"),
            RemoteUnit("base", 10250, "EUR"),
        ]

    def test_interest_charge_flips_sign(self, account, ledger):
        (remote,) = convert_account_transaction(
            account_tx(AccountTransactionType.INTEREST_CHARGE), account, ledger
        )
        assert remote.units == [RemoteUnit("base", -10000, "EUR")]

    def test_deposit_fee_without_security(self, account, ledger):
        (remote,) = convert_account_transaction(
            account_tx(AccountTransactionType.FEES, amount=300), account, ledger
        )
        assert remote.type == "DepositFee"
        assert remote.units == [RemoteUnit("fee", -300, "EUR")]

    def test_fee_refund_keeps_sign(self, account, ledger):
        (remote,) = convert_account_transaction(
            account_tx(AccountTransactionType.FEES_REFUND, amount=300), account, ledger
        )
        assert remote.units == [RemoteUnit("fee", 300, "EUR")]

    def test_deposit_tax_without_security(self, account, ledger):
        (remote,) = convert_account_transaction(
            account_tx(AccountTransactionType.TAXES, amount=400), account, ledger
        )
        assert remote.type == "DepositTax"
        assert remote.units == [RemoteUnit("tax", -400, "EUR")]

    def test_securities_fee_produces_linked_pair(self, account, ledger):
        tx = account_tx(AccountTransactionType.FEES, amount=300, security=sample_security())

        account_side, portfolio_side = convert_account_transaction(tx, account, ledger)

        assert account_side.type == portfolio_side.type == "SecuritiesFee"
        assert account_side.account_uuid == "acc-1"
        assert account_side.units == [RemoteUnit("base", -300, "EUR")]
        assert portfolio_side.account_uuid == "pf-1"
        assert portfolio_side.security_uuid == "sec-basf"
        assert portfolio_side.units == [RemoteUnit("fee", -300, "EUR")]
        assert account_side.partner_transaction_uuid == portfolio_side.uuid
        assert portfolio_side.partner_transaction_uuid == account_side.uuid

    def test_securities_tax_refund(self, account, ledger):
        tx = account_tx(
            AccountTransactionType.TAX_REFUND, amount=150, security=sample_security()
        )

        account_side, portfolio_side = convert_account_transaction(tx, account, ledger)

        assert account_side.type == "SecuritiesTax"
        assert account_side.units == [RemoteUnit("base", 150, "EUR")]
        assert portfolio_side.units == [RemoteUnit("tax", 150, "EUR")]

    def test_synthetic_uuid_uses_hint(self, account, ledger):
        tx = account_tx(AccountTransactionType.FEES, amount=300, security=sample_security())

        records = convert_account_transaction(tx, account, ledger, partner_uuid_hint="hinted")

        assert records[1].uuid == "hinted"
        assert records[0].partner_transaction_uuid == "hinted"

    def test_synthetic_uuid_is_stable_without_hint(self, account, ledger):
        tx = account_tx(AccountTransactionType.FEES, amount=300, security=sample_security())

        first = convert_account_transaction(tx, account, ledger)
        second = convert_account_transaction(tx, account, ledger)

        assert first == second
        assert first[1].uuid == synthetic_uuid("tx-1")
        assert first[1].uuid != "tx-1"

    def test_dividend_pairing(self):
        ledger = dividend_ledger()
        account = ledger.accounts[0]
        dividend = account.transactions[-1]

        account_side, portfolio_side = convert_account_transaction(dividend, account, ledger)

        assert account_side.type == portfolio_side.type == "SecuritiesDividend"
        assert account_side.units == [RemoteUnit("base", 1200, "EUR")]
        assert account_side.shares is None
        assert portfolio_side.shares == dividend.shares
        assert portfolio_side.account_uuid == "pf-1"
        assert portfolio_side.units == [
            RemoteUnit("fee", -100, "EUR"),
            RemoteUnit("tax", -300, "EUR"),
            RemoteUnit("base", 1600, "EUR"),
        ]
        assert sum(u.amount for u in portfolio_side.units) == 1200
        assert account_side.partner_transaction_uuid == portfolio_side.uuid
        assert portfolio_side.partner_transaction_uuid == account_side.uuid

    def test_account_buy_flips_sign(self):
        ledger = buy_ledger(fee=500)
        account = ledger.accounts[0]

        (remote,) = convert_account_transaction(account.transactions[0], account, ledger)

        assert remote.type == "SecuritiesOrder"
        assert remote.units == [RemoteUnit("base", -180500, "EUR")]
        assert remote.partner_transaction_uuid == "tx-buy-pf"

    def test_currency_transfer_pair(self, account, ledger):
        target = Account(uuid="acc-2", name="Savings", currency_code="EUR")
        outbound = account_tx(AccountTransactionType.TRANSFER_OUT, uuid="out")
        inbound = account_tx(AccountTransactionType.TRANSFER_IN, uuid="in")
        link(outbound, inbound)

        (remote_out,) = convert_account_transaction(outbound, account, ledger)
        (remote_in,) = convert_account_transaction(inbound, target, ledger)

        assert remote_out.type == remote_in.type == "CurrencyTransfer"
        assert remote_out.units == [RemoteUnit("base", -10000, "EUR")]
        assert remote_in.units == [RemoteUnit("base", 10000, "EUR")]
        assert remote_out.partner_transaction_uuid == "in"
        assert remote_in.partner_transaction_uuid == "out"

    def test_carries_date_and_note(self, account, ledger):
        (remote,) = convert_account_transaction(
            account_tx(AccountTransactionType.DEPOSIT, note="salary"), account, ledger
        )
        assert remote.date_time == TRADE_DATE
        assert remote.note == "salary"


class TestOwningPortfolio:
    """Test attribution of security-side records to a portfolio."""

    def test_prefers_portfolio_with_matching_reference_account(self):
        first_account = Account(uuid="a1", name="A", currency_code="EUR")
        second_account = Account(uuid="a2", name="B", currency_code="EUR")
        ledger = Ledger(
            accounts=[first_account, second_account],
            portfolios=[
                Portfolio(uuid="p1", name="P1", reference_account=first_account),
                Portfolio(uuid="p2", name="P2", reference_account=second_account),
            ],
        )

        assert owning_portfolio(ledger, second_account).uuid == "p2"

    def test_falls_back_to_first_portfolio(self, ledger, caplog):
        stranger = Account(uuid="a9", name="Stranger", currency_code="EUR")

        assert owning_portfolio(ledger, stranger).uuid == "pf-1"
        assert "reference account" in caplog.text

    def test_no_portfolio_fails(self, account):
        tx = account_tx(AccountTransactionType.DIVIDENDS, security=sample_security())

        with pytest.raises(ConversionError, match="No portfolio"):
            convert_account_transaction(tx, account, Ledger(accounts=[account]))
