# ᛟᛞᛁᚾ • Odin's Judgement - Trust Classification
"""
Classify resource policies for public exposure and cross-account trust.

Three signals are produced for every policy:

- ``is_public``: a hard boolean - some Allow statement grants an unscoped
  wildcard principal.
- ``summarize_policy``: one English sentence per statement.
- ``is_interesting``: a coarse keyword filter over the rendered summary that
  surfaces statements worth a human look (wildcards, org-scoped grants,
  roles, account roots). It is lexical, not a proof.
"""

from dataclasses import dataclass
from typing import List, Optional

from gjallar.policy.models import Policy, Principal, PrincipalKind, Statement

# A wildcard principal carrying any of these keys is scoped to an owner and
# is not reported as public.
SCOPING_CONDITION_KEYS = frozenset(k.lower() for k in (
    "aws:PrincipalOrgID",
    "aws:PrincipalAccount",
    "aws:PrincipalOrgPaths",
    "aws:SourceArn",
    "aws:SourceAccount",
    "aws:SourceVpc",
    "aws:SourceVpce",
))

INTERESTING_KEYWORDS = (
    "aws:principalorgid",
    "aws:principalaccount",
    "aws:principalorgpaths",
    "role",
    "root",
)


@dataclass(frozen=True)
class Classification:
    public: bool
    interesting: bool
    summary: str


def is_scoped(statement: Statement) -> bool:
    """True when the statement carries an ownership-scoping condition key."""
    return any(key in SCOPING_CONDITION_KEYS for key in statement.condition_keys)


def is_public_statement(statement: Statement) -> bool:
    if not statement.is_allow:
        return False
    if not any(p.is_wildcard for p in statement.principal):
        return False
    return not is_scoped(statement)


def is_public(policy: Policy) -> bool:
    """
    True iff at least one Allow statement names a wildcard principal without
    an ownership-scoping condition.

    Statements are evaluated independently; a Deny elsewhere in the policy
    does not cancel a public Allow.
    """
    return any(is_public_statement(s) for s in policy.statements)


# ─────────────────────────────────────────────────────────────────────────────
# English summaries
# ─────────────────────────────────────────────────────────────────────────────

def _describe_principal(principal: Principal, caller_account_id: str) -> str:
    if principal.is_wildcard:
        if principal.kind is PrincipalKind.ANY or principal.value == "*":
            return "Everyone"
        return f"Everyone ({principal.value})"

    if principal.kind is PrincipalKind.SERVICE:
        return f"the {principal.value} service"
    if principal.kind is PrincipalKind.FEDERATED:
        return f"users federated through {principal.value}"

    value = principal.value
    if caller_account_id and value in (caller_account_id, f"arn:aws:iam::{caller_account_id}:root"):
        return f"principals in your own account ({caller_account_id})"
    if value.isdigit():
        # AWS stores a bare account ID as that account's root ARN
        return f"arn:aws:iam::{value}:root"
    return value


def _describe_principals(statement: Statement, caller_account_id: str) -> List[str]:
    if statement.not_principal:
        excluded = ", ".join(_describe_principal(p, caller_account_id) for p in statement.not_principal)
        return [f"Everyone except {excluded}"]
    if not statement.principal:
        return ["Unspecified principals"]
    return [_describe_principal(p, caller_account_id) for p in statement.principal]


def _describe_actions(statement: Statement) -> str:
    if statement.not_action:
        return "any action except " + ", ".join(statement.not_action)
    if not statement.action or "*" in statement.action:
        return "any action"
    return ", ".join(statement.action)


def _describe_resources(statement: Statement) -> str:
    if statement.not_resource:
        return " on all resources except " + ", ".join(statement.not_resource)
    if not statement.resource:
        return ""
    if "*" in statement.resource:
        return " on all resources"
    return " on " + ", ".join(statement.resource)


def _describe_conditions(statement: Statement) -> str:
    if not statement.condition:
        return ""
    clauses = [f"{c.key} {c.operator} {' or '.join(c.values)}" for c in statement.condition]
    return " when " + " and ".join(clauses)


def summarize_statement(statement: Statement, caller_account_id: str) -> str:
    """
    Render a statement as one English sentence.

    Examples:
        Everyone can perform s3:GetObject on arn:aws:s3:::bucket/*
        principals in your own account (111122223333) can perform sqs:SendMessage
            on arn:aws:sqs:us-east-1:111122223333:q
        the sns.amazonaws.com service can perform sqs:SendMessage on ...
            when aws:SourceArn ArnEquals arn:aws:sns:us-east-1:111122223333:t
        Everyone is denied any action on all resources when aws:SecureTransport Bool false
    """
    principals = _describe_principals(statement, caller_account_id)
    subject = ", ".join(principals)
    if statement.is_allow:
        verb = "can perform"
    else:
        verb = "is denied" if len(principals) == 1 else "are denied"
    return (
        f"{subject} {verb} {_describe_actions(statement)}"
        f"{_describe_resources(statement)}{_describe_conditions(statement)}"
    )


def summarize_policy(policy: Policy, caller_account_id: str) -> str:
    """
    Summarize every statement of a policy.

    A single statement renders as its bare sentence. With more than one,
    each line is prefixed ``Statement <i> says: `` (zero-based) and lines
    are newline-joined.
    """
    if policy.is_empty():
        return ""
    if len(policy.statements) == 1:
        return summarize_statement(policy.statements[0], caller_account_id).rstrip("\n")

    lines = [
        f"Statement {i} says: {summarize_statement(s, caller_account_id)}"
        for i, s in enumerate(policy.statements)
    ]
    return "\n".join(lines).rstrip("\n")


def _line_is_interesting(line: str) -> bool:
    text = line.lower()
    if "everyone" in text and "denied" not in text:
        return True
    if any(keyword in text for keyword in INTERESTING_KEYWORDS):
        return True
    # aws:arn is only suspicious when not pinned by both a source ARN and account
    if "aws:arn" in text and not ("sourcearn" in text and "sourceaccount" in text):
        return True
    return False


def is_interesting(summary: Optional[str]) -> bool:
    """
    Case-insensitive keyword heuristic over a rendered summary.

    Matches on: ``everyone`` (unless the same line says ``denied``),
    ``aws:PrincipalOrgID``, ``aws:PrincipalAccount``, ``aws:PrincipalOrgPaths``,
    ``role``, ``root``, and ``aws:arn`` unless the line also carries both
    ``SourceArn`` and ``SourceAccount``. Substring matching is deliberate
    and will match unrelated words containing ``role``/``root``.
    """
    if not summary:
        return False
    return any(_line_is_interesting(line) for line in summary.splitlines())


def classify(policy: Policy, caller_account_id: str) -> Classification:
    """Public flag, summary and interesting flag for one policy."""
    public = is_public(policy)
    summary = summarize_policy(policy, caller_account_id)
    return Classification(
        public=public,
        interesting=public or is_interesting(summary),
        summary=summary,
    )
