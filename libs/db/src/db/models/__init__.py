"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the ledger models used by ``feed_bridge``.
"""

from .ledger import Base, FbMerchant, FbTransaction

__all__ = [
    "Base",
    "FbMerchant",
    "FbTransaction",
]
