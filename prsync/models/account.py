"""Account and portfolio model classes

Attributes (accounts):
- uuid: Stable identifier, shared with the remote mirror
- name: The account display name
- currency_code: Currency of the deposit account
- retired: 1 if the account is no longer in use
- note: Free text note
- created_at / updated_at: Row timestamps

Portfolios carry the same fields except currency_code, plus
reference_account_uuid: the deposit account their trades settle through.
"""

from prsync.models.active_model import ActiveModel, ActiveModelError


class AccountRecord(ActiveModel):
    table_name = "accounts"
    primary_key = "uuid"

    _allowed_fields = {
        "uuid",
        "name",
        "currency_code",
        "retired",
        "note",
        "created_at",
        "updated_at",
    }

    def _before_save(self):
        self.validate()

    def validate(self):
        """Validate the account"""
        errors = []

        if not getattr(self, "uuid", None):
            errors.append("uuid is required for Account")

        if not getattr(self, "name", None):
            errors.append("name is required")

        currency_code = getattr(self, "currency_code", None)
        if not currency_code or len(currency_code) != 3:
            errors.append(f"currency_code must be an ISO 4217 code, got {currency_code!r}")

        if errors:
            raise ActiveModelError(f"Validation failed: {', '.join(errors)}")


class PortfolioRecord(ActiveModel):
    table_name = "portfolios"
    primary_key = "uuid"

    _allowed_fields = {
        "uuid",
        "name",
        "reference_account_uuid",
        "retired",
        "note",
        "created_at",
        "updated_at",
    }

    def _before_save(self):
        self.validate()

    def validate(self):
        """Validate the portfolio"""
        errors = []

        if not getattr(self, "uuid", None):
            errors.append("uuid is required for Portfolio")

        if not getattr(self, "name", None):
            errors.append("name is required")

        if not getattr(self, "reference_account_uuid", None):
            errors.append("reference_account_uuid is required")

        if errors:
            raise ActiveModelError(f"Validation failed: {', '.join(errors)}")
