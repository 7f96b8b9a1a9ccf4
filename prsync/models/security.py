"""Security model class

Attributes:
- uuid: Stable identifier, shared with the remote mirror
- name: Display name
- currency_code: Quote currency; NULL for instruments without one (indices)
- isin, wkn, symbol: Optional identifiers
- retired: 1 if the security is no longer tracked
- note: Free text note
"""

from prsync.models.active_model import ActiveModel, ActiveModelError


class SecurityRecord(ActiveModel):
    table_name = "securities"
    primary_key = "uuid"

    _allowed_fields = {
        "uuid",
        "name",
        "currency_code",
        "isin",
        "wkn",
        "symbol",
        "retired",
        "note",
        "created_at",
        "updated_at",
    }

    def _before_save(self):
        errors = []
        if not getattr(self, "uuid", None):
            errors.append("uuid is required for Security")
        if not getattr(self, "name", None):
            errors.append("name is required")
        if errors:
            raise ActiveModelError(f"Validation failed: {', '.join(errors)}")
