# ᚠᛖᚺᚢ • Fehu - Findings and Resource Records
"""
Data models shared by the service fetchers, the scanner and the exporters.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from gjallar.policy.models import EMPTY_POLICY, Policy

COLUMN_ACCOUNT = "Account"
COLUMN_NAME = "Name"
COLUMN_ARN = "ARN"
COLUMN_REGION = "Region"
COLUMN_PUBLIC = "Public"
COLUMN_INTERESTING = "Interesting"
COLUMN_SUMMARY = "Resource Policy Summary"

ALL_COLUMNS = (
    COLUMN_ACCOUNT,
    COLUMN_NAME,
    COLUMN_ARN,
    COLUMN_REGION,
    COLUMN_PUBLIC,
    COLUMN_INTERESTING,
    COLUMN_SUMMARY,
)

WIDE_COLUMNS = [COLUMN_ACCOUNT, COLUMN_ARN, COLUMN_PUBLIC, COLUMN_INTERESTING, COLUMN_SUMMARY]
DEFAULT_COLUMNS = [COLUMN_ARN, COLUMN_PUBLIC, COLUMN_INTERESTING, COLUMN_SUMMARY]


def yes_no(value: bool) -> str:
    return "Yes" if value else "No"


@dataclass(frozen=True)
class ResourcePolicyRecord:
    """
    A resource and its raw policy, as handed from a fetcher to the scanner.

    ``public_override`` lets a fetcher decide exposure from resource
    configuration instead of the policy (OpenSearch without fine-grained
    access control). ``short_circuit_summary`` marks resources that are
    public by construction; their policy is never parsed.
    """
    name: str
    arn: str
    region: str
    policy_json: str = ""
    public_override: Optional[bool] = None
    emit_without_policy: bool = False
    short_circuit_summary: Optional[str] = None


@dataclass(frozen=True)
class Finding:
    """One (resource, policy) pair discovered during a scan. Immutable."""
    account_id: str
    name: str
    arn: str
    region: str
    policy: Policy = field(default=EMPTY_POLICY, compare=False, repr=False)
    raw_policy_json: str = field(default="", repr=False)
    public: bool = False
    interesting: bool = False
    summary: str = ""

    def column_value(self, column: str) -> str:
        values = {
            COLUMN_ACCOUNT: self.account_id,
            COLUMN_NAME: self.name,
            COLUMN_ARN: self.arn,
            COLUMN_REGION: self.region,
            COLUMN_PUBLIC: yes_no(self.public),
            COLUMN_INTERESTING: yes_no(self.interesting),
            COLUMN_SUMMARY: self.summary,
        }
        if column not in values:
            raise KeyError(f"Unknown column: {column}")
        return values[column]

    def to_row(self, columns: Sequence[str]) -> List[str]:
        return [self.column_value(c) for c in columns]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "account_id": self.account_id,
            "name": self.name,
            "arn": self.arn,
            "region": self.region,
            "public": self.public,
            "interesting": self.interesting,
            "summary": self.summary,
            "policy": self.raw_policy_json,
        }


def parse_table_cols(table_cols: Optional[str], output_type: str = "brief") -> List[str]:
    """
    Resolve which columns to render.

    Explicit ``table_cols`` (comma separated, spaces after commas allowed)
    wins; ``wide`` output shows the account column; otherwise the default
    brief set is used.
    """
    if table_cols:
        cols = [c.strip() for c in table_cols.split(",") if c.strip()]
        unknown = [c for c in cols if c not in ALL_COLUMNS]
        if unknown:
            raise ValueError(f"Unknown column(s): {', '.join(unknown)}")
        return cols
    if output_type == "wide":
        return list(WIDE_COLUMNS)
    return list(DEFAULT_COLUMNS)
