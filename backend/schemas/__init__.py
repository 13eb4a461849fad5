"""Pydantic schemas."""

from .transaction import (
    NewListingSpec,
    TransactionCreate,
    TransactionFilters,
    TransactionResponse,
    TransactionUpdate,
)

__all__ = [
    "NewListingSpec",
    "TransactionCreate",
    "TransactionFilters",
    "TransactionResponse",
    "TransactionUpdate",
]
