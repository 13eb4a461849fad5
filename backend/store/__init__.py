"""Persistence boundary for the catalog and ledger services.

Services depend on the :class:`~store.protocol.Store` protocol; the
SQLAlchemy-backed implementation lives in :mod:`store.sql_store`.
"""

from store.protocol import Store
from store.sql_store import SqlAlchemyStore

__all__ = ["SqlAlchemyStore", "Store"]
