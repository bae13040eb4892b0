"""Export of payment search results in various formats."""

import csv
import io
import json
from typing import List

from .models import SearchResult

CSV_FIELDS: List[str] = [
    "id",
    "ref",
    "content",
    "amount",
    "status",
    "txnId",
    "createdAt",
    "updatedAt",
]


class SearchExporter:
    """Renders a SearchResult for operators."""

    def __init__(self, result: SearchResult):
        """Initialize the exporter.

        Args:
            result: The search result to render.
        """
        self.result = result

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(
            {"data": self.result.data, "count": self.result.count},
            indent=indent,
            default=str,
            ensure_ascii=False,
        )

    def to_csv(self) -> str:
        """One row per payment, with a header line."""
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=CSV_FIELDS, extrasaction="ignore")
        writer.writeheader()
        for row in self.result.data:
            writer.writerow({
                **row,
                "status": "paid" if row.get("status") else "unpaid",
            })
        return output.getvalue()

    def to_summary_text(self) -> str:
        """Counts and amount totals, split by status."""
        paid = [r for r in self.result.data if r.get("status")]
        unpaid = [r for r in self.result.data if not r.get("status")]

        lines = [
            "=" * 48,
            "PAYMENT SEARCH SUMMARY",
            "=" * 48,
            f"Total payments:  {self.result.count}",
            f"Paid:            {len(paid)} ({sum(r['amount'] for r in paid)})",
            f"Unpaid:          {len(unpaid)} ({sum(r['amount'] for r in unpaid)})",
        ]
        if self.result.data:
            lines.append(f"First created:   {self.result.data[0].get('createdAt')}")
            lines.append(f"Last created:    {self.result.data[-1].get('createdAt')}")
        lines.append("=" * 48)
        return "\n".join(lines)

    def render(self, format: str = "json") -> str:
        if format == "json":
            return self.to_json()
        elif format == "csv":
            return self.to_csv()
        elif format == "text":
            return self.to_summary_text()
        raise ValueError(f"Unsupported export format: {format}")
