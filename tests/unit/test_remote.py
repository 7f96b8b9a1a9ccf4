"""Unit tests for remote record normalization."""

from datetime import datetime
from decimal import Decimal

import pytest

from prsync.api_client import RemoteUnavailable
from prsync.remote import (
    EntityKind,
    MalformedRemoteRecord,
    RemoteAccount,
    RemoteTransaction,
    RemoteUnit,
    account_to_wire,
    amount_from_wire,
    amount_to_wire,
    normalize_listing,
    transaction_from_wire,
    transaction_to_wire,
)
from tests.fixtures.sample_responses import (
    sample_accounts_response,
    sample_securities_response,
    sample_transactions_response,
)


class TestAmounts:
    """Test minor unit conversion."""

    @pytest.mark.parametrize(
        "amount,wire",
        [(10000, "100.00"), (-180500, "-1805.00"), (1, "0.01"), (0, "0.00")],
    )
    def test_amount_to_wire(self, amount, wire):
        assert amount_to_wire(amount) == wire

    def test_amount_from_wire_accepts_numbers(self):
        assert amount_from_wire("100.00") == 10000
        assert amount_from_wire(12.5) == 1250
        assert amount_from_wire("-0.01") == -1

    def test_amount_from_wire_rejects_garbage(self):
        with pytest.raises(MalformedRemoteRecord, match="Invalid amount"):
            amount_from_wire("12,5 EUR")


class TestListings:
    """Test normalization of collection listings."""

    def test_securities_listing(self):
        securities = normalize_listing(EntityKind.SECURITY, sample_securities_response())

        assert [s.uuid for s in securities] == ["sec-basf", "sec-gone"]
        assert securities[0].currency_code == "EUR"
        assert securities[0].isin == "DE000BASF111"

    def test_accounts_listing(self):
        accounts = normalize_listing(EntityKind.ACCOUNT, sample_accounts_response())

        assert accounts[0] == RemoteAccount(
            uuid="acc-1", type="deposit", name="Cash", currency_code="EUR"
        )
        assert accounts[1].reference_account_uuid == "acc-1"

    def test_transactions_listing(self):
        (transaction,) = normalize_listing(
            EntityKind.TRANSACTION, sample_transactions_response()
        )

        assert transaction.uuid == "tx-buy-pf"
        assert transaction.date_time == datetime.fromisoformat("2021-06-18T10:30:00+00:00")
        assert transaction.shares == Decimal("3")
        assert transaction.security_uuid == "sec-basf"
        assert transaction.units == [
            RemoteUnit("fee", -500, "EUR"),
            RemoteUnit("base", -180500, "EUR"),
        ]

    def test_listing_must_be_a_list(self):
        with pytest.raises(MalformedRemoteRecord, match="Expected list"):
            normalize_listing(EntityKind.SECURITY, {"items": []})

    def test_record_missing_uuid(self):
        with pytest.raises(MalformedRemoteRecord, match="Missing fields"):
            normalize_listing(EntityKind.ACCOUNT, [{"type": "deposit"}])

    def test_malformed_record_is_remote_unavailable(self):
        with pytest.raises(RemoteUnavailable):
            transaction_from_wire({"uuid": "x", "accountUuid": "a", "type": "Payment",
                                   "datetime": "yesterday"})


class TestSerialization:
    """Test payloads sent to the service."""

    def test_transaction_to_wire(self):
        transaction = RemoteTransaction(
            uuid="tx-1",
            account_uuid="acc-1",
            type="Payment",
            date_time=datetime(2021, 6, 18),
            units=[RemoteUnit("base", 10000, "EUR")],
        )

        payload = transaction_to_wire(transaction)

        assert payload == {
            "uuid": "tx-1",
            "accountUuid": "acc-1",
            "type": "Payment",
            "datetime": "2021-06-18T00:00:00",
            "note": None,
            "portfolioSecurityUuid": None,
            "shares": None,
            "partnerTransactionUuid": None,
            "units": [{"type": "base", "amount": "100.00", "currencyCode": "EUR"}],
        }
        assert transaction_from_wire(payload) == transaction

    def test_deposit_account_omits_reference_account(self):
        payload = account_to_wire(
            RemoteAccount(uuid="acc-1", type="deposit", name="Cash", currency_code="EUR")
        )
        assert "referenceAccountUuid" not in payload

    def test_securities_account_carries_reference_account(self):
        payload = account_to_wire(
            RemoteAccount(
                uuid="pf-1", type="securities", name="Depot", reference_account_uuid="acc-1"
            )
        )
        assert payload["referenceAccountUuid"] == "acc-1"

    def test_without_partner_leaves_original_untouched(self):
        transaction = RemoteTransaction(
            uuid="a",
            account_uuid="acc",
            type="SecuritiesOrder",
            date_time=datetime(2021, 1, 1),
            partner_transaction_uuid="b",
        )

        stripped = transaction.without_partner()

        assert stripped.partner_transaction_uuid is None
        assert transaction.partner_transaction_uuid == "b"
