"""Key/value properties of the local ledger (e.g. the remote portfolio id)."""

from prsync.models.active_model import ActiveModel


class Property(ActiveModel):
    table_name = "properties"
    primary_key = "key"

    _allowed_fields = {"key", "value", "created_at", "updated_at"}
