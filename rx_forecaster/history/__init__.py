"""Sales ledger → per-item bucketed demand series."""
