"""SIIGO accounting spreadsheet ingestion.

Reads uploaded SIIGO exports (xlsx / xls / csv), locates the header row,
normalizes each row into a ``SiigoRecord`` and aggregates totals per document
type and month. Persistence of the per-month summary rows lives in ``db``.
"""

__version__ = "0.1.0"
