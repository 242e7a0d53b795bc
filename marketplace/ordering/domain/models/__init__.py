from .transaction import Transaction, TransactionManager


__all__ = [
    "Transaction",
    "TransactionManager",
]
