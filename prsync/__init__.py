"""Mirror a local securities ledger onto the Portfolio Report service."""

__version__ = "0.1.0"
