"""Transaction model class

One row per local transaction, owned by either a deposit account or a
portfolio.

Attributes:
- uuid: Stable identifier, shared with the remote mirror
- owner_type: "account" or "portfolio"
- owner_uuid: uuid of the owning account or portfolio
- type: Transaction type name (e.g. BUY, DEPOSIT, DIVIDENDS)
- date_time: ISO-8601 booking date and time
- security_uuid: Security the transaction refers to, if any
- shares: Share quantity as decimal text, if any
- amount: Gross amount in minor units (hundredths)
- currency_code: Currency of amount and units
- fee_amount / tax_amount: FEE and TAX unit sums in minor units
- cross_entry_uuid: uuid of the paired transaction (buy/sell, transfer)
- note: Free text note
"""

from prsync.ledger import AccountTransactionType, PortfolioTransactionType
from prsync.models.active_model import ActiveModel, ActiveModelError

OWNER_TYPES = {
    "account": {t.value for t in AccountTransactionType},
    "portfolio": {t.value for t in PortfolioTransactionType},
}


class TransactionRecord(ActiveModel):
    table_name = "transactions"
    primary_key = "uuid"

    _allowed_fields = {
        "uuid",
        "owner_type",
        "owner_uuid",
        "type",
        "date_time",
        "security_uuid",
        "shares",
        "amount",
        "currency_code",
        "fee_amount",
        "tax_amount",
        "cross_entry_uuid",
        "note",
        "created_at",
        "updated_at",
    }

    def __init__(self, database, **kwargs):
        kwargs.setdefault("fee_amount", 0)
        kwargs.setdefault("tax_amount", 0)
        super().__init__(database, **kwargs)

    def _before_save(self):
        self.validate()

    def validate(self):
        """Validate the transaction"""
        errors = []

        if not getattr(self, "uuid", None):
            errors.append("uuid is required for Transaction")

        owner_type = getattr(self, "owner_type", None)
        if owner_type not in OWNER_TYPES:
            errors.append(f"owner_type must be 'account' or 'portfolio', got {owner_type!r}")
        elif getattr(self, "type", None) not in OWNER_TYPES[owner_type]:
            errors.append(f"Invalid {owner_type} transaction type {getattr(self, 'type', None)!r}")

        if owner_type == "portfolio" and not getattr(self, "security_uuid", None):
            errors.append("security_uuid is required for portfolio transactions")

        if not isinstance(getattr(self, "amount", None), int):
            errors.append("amount must be an integer in minor units")

        if not getattr(self, "date_time", None):
            errors.append("date_time is required")

        if errors:
            raise ActiveModelError(f"Validation failed: {', '.join(errors)}")
