"""Fixed vocabularies shared across the ledger."""
