from .ledger_entry import LedgerEntry

__all__ = ["LedgerEntry"]
