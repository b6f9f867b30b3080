# ᚢᛏᚠᛟᚱᛊᛖᛚ • Exporters - Finding Export Formats
"""
gjallar exporters - write the ranked finding list to disk.

Formats:
- CSV: spreadsheet analysis, selected columns only
- JSON: every finding field plus the raw policy document
"""

from gjallar.exporters.csv_export import CSVExporter
from gjallar.exporters.json_export import JSONExporter

__all__ = ['CSVExporter', 'JSONExporter']
