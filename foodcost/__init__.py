"""Food cost core: recipe explosion, inventory ledger reconciliation and vendor item matching."""

__version__ = "0.1.0"
