# ᚲᛊᚹ • CSV Exporter - Spreadsheet Bridge
"""
Export findings to CSV format for spreadsheet analysis.

Usage:
    CSVExporter.save(findings, 'resource-trusts.csv', columns=['ARN', 'Public'])
    csv_string = CSVExporter.export(findings)
"""

import csv
import io
from typing import List, Optional, Sequence

from gjallar.models import ALL_COLUMNS, Finding


class CSVExporter:
    """Export findings to CSV format."""

    DEFAULT_COLUMNS = list(ALL_COLUMNS)

    @classmethod
    def export(cls,
               findings: Sequence[Finding],
               columns: Optional[List[str]] = None,
               include_header: bool = True) -> str:
        """
        Export findings to CSV string.

        Args:
            findings: Ranked findings
            columns: Column names to include (default: every column)
            include_header: Include header row

        Returns:
            CSV string
        """
        cols = columns or cls.DEFAULT_COLUMNS

        output = io.StringIO()
        writer = csv.writer(output)

        if include_header:
            writer.writerow(cols)

        for finding in findings:
            writer.writerow(finding.to_row(cols))

        return output.getvalue()

    @classmethod
    def save(cls,
             findings: Sequence[Finding],
             output_path: str,
             **kwargs) -> None:
        """Save findings to CSV file."""
        csv_content = cls.export(findings, **kwargs)
        with open(output_path, 'w', newline='', encoding='utf-8') as f:
            f.write(csv_content)
