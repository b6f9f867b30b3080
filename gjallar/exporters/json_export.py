# ᛃᛊᛟᚾ • JSON Exporter
"""Export findings, with their raw policies, to a JSON document."""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Sequence

from gjallar import __version__
from gjallar.models import Finding


class JSONExporter:

    @classmethod
    def to_dict(cls, findings: Sequence[Finding], account_id: str = "") -> Dict[str, Any]:
        return {
            "metadata": {
                "tool": "gjallar",
                "version": __version__,
                "generated_at": datetime.now(timezone.utc).isoformat(),
                "account_id": account_id,
            },
            "summary": {
                "total_findings": len(findings),
                "public": sum(1 for f in findings if f.public),
                "interesting": sum(1 for f in findings if f.interesting),
            },
            "findings": [f.to_dict() for f in findings],
        }

    @classmethod
    def export(cls, findings: Sequence[Finding], account_id: str = "") -> str:
        return json.dumps(cls.to_dict(findings, account_id), indent=2)

    @classmethod
    def save(cls, findings: Sequence[Finding], output_path: str, account_id: str = "") -> None:
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(cls.export(findings, account_id))
