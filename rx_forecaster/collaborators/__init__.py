"""
Stock and sales-ledger collaborators.

The forecasting engine only reads through the ``StockSource`` and
``LedgerSource`` protocols in ``base``. Every failure to fetch is raised as
``DataFetchError``.

Modules:
  base           : protocols, ``DataFetchError``, window helper.
  memory         : in-memory store for tests and fixtures.
  sqlite_store   : local SQLite store (see ``rx_forecaster.db``).
  csv_import     : all-or-nothing CSV parsers for stock and sales rows.
  parquet_ledger : Parquet ledger export / reader (pyarrow).
  hosted_client  : PostgREST-style hosted store over httpx.
"""
