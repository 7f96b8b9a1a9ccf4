"""ActiveRecord-style model classes for the local ledger database.

Models provide object-relational mapping with ActiveRecord pattern.
"""

from prsync.models.account import AccountRecord, PortfolioRecord
from prsync.models.active_model import ActiveModel, ActiveModelError
from prsync.models.property import Property
from prsync.models.security import SecurityRecord
from prsync.models.transaction import TransactionRecord

__all__ = [
    "ActiveModel",
    "ActiveModelError",
    "AccountRecord",
    "PortfolioRecord",
    "Property",
    "SecurityRecord",
    "TransactionRecord",
]
