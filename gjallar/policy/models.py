# ᚱᚢᚾᛖᛊ • Runes - Resource Policy Data Model
"""
Typed, immutable representation of an AWS resource policy document.

Policies arrive from AWS as JSON strings (or, for a few APIs, already
decoded dicts). ``parse_policy`` normalizes every shorthand the IAM
grammar allows - single strings instead of lists, ``"Principal": "*"``,
a single statement object instead of a list - into one shape.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from gjallar.errors import MalformedPolicyError


class PrincipalKind(Enum):
    """Kinds of principal a statement can name."""
    ANY = "*"
    ACCOUNT_OR_USER = "AWS"
    SERVICE = "Service"
    FEDERATED = "Federated"


# Principal map keys -> kind. CanonicalUser identifies an account owner (S3).
PRINCIPAL_KEYS: Dict[str, PrincipalKind] = {
    "AWS": PrincipalKind.ACCOUNT_OR_USER,
    "CanonicalUser": PrincipalKind.ACCOUNT_OR_USER,
    "Service": PrincipalKind.SERVICE,
    "Federated": PrincipalKind.FEDERATED,
}

EFFECTS = ("Allow", "Deny")


@dataclass(frozen=True)
class Principal:
    kind: PrincipalKind
    value: str

    @property
    def account_id(self) -> Optional[str]:
        """Account ID named by an AWS principal (bare ID or IAM ARN), if any."""
        if self.kind is not PrincipalKind.ACCOUNT_OR_USER:
            return None
        if self.value.isdigit():
            return self.value
        parts = self.value.split(":")
        if len(parts) >= 6 and parts[0] == "arn":
            return parts[4] or None
        return None

    @property
    def is_wildcard(self) -> bool:
        """True for ``*`` and for AWS principals whose account part is wildcarded."""
        if self.kind is PrincipalKind.ANY:
            return True
        if self.kind is not PrincipalKind.ACCOUNT_OR_USER:
            return False
        return self.value == "*" or self.account_id == "*"


@dataclass(frozen=True)
class Condition:
    """One ``operator -> key -> values`` triple from a Condition block."""
    operator: str
    key: str
    values: Tuple[str, ...]


@dataclass(frozen=True)
class Statement:
    effect: str
    sid: str = ""
    principal: Tuple[Principal, ...] = ()
    not_principal: Tuple[Principal, ...] = ()
    action: Tuple[str, ...] = ()
    not_action: Tuple[str, ...] = ()
    resource: Tuple[str, ...] = ()
    not_resource: Tuple[str, ...] = ()
    condition: Tuple[Condition, ...] = ()

    @property
    def is_allow(self) -> bool:
        return self.effect == "Allow"

    @property
    def condition_keys(self) -> Tuple[str, ...]:
        """Condition keys in document order, lowercased, without duplicates."""
        seen: List[str] = []
        for cond in self.condition:
            key = cond.key.lower()
            if key not in seen:
                seen.append(key)
        return tuple(seen)


@dataclass(frozen=True)
class Policy:
    statements: Tuple[Statement, ...] = ()
    version: str = ""
    policy_id: str = ""

    def is_empty(self) -> bool:
        return len(self.statements) == 0

    def __len__(self) -> int:
        return len(self.statements)

    def __iter__(self) -> Iterator[Statement]:
        return iter(self.statements)


EMPTY_POLICY = Policy()


def parse_policy(raw: Union[str, bytes, Mapping[str, Any], None]) -> Policy:
    """
    Parse a resource policy document.

    Args:
        raw: JSON text (str or bytes), an already-decoded mapping, or None

    Returns:
        Policy. Absent or blank input yields an empty Policy, so callers can
        tell "no policy attached" from "has policy" with ``is_empty()``.

    Raises:
        MalformedPolicyError: Input is not JSON or does not follow the
            policy grammar (non-object document, missing/invalid Effect,
            wrongly typed fields).
    """
    if raw is None:
        return EMPTY_POLICY

    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedPolicyError(f"policy is not valid UTF-8: {e}") from e

    if isinstance(raw, str):
        if not raw.strip():
            return EMPTY_POLICY
        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedPolicyError(f"policy is not valid JSON: {e}") from e
    else:
        document = raw

    if not isinstance(document, Mapping):
        raise MalformedPolicyError(f"policy document must be an object, got {type(document).__name__}")

    raw_statements = document.get("Statement")
    if raw_statements is None:
        raw_statements = []
    elif isinstance(raw_statements, Mapping):
        raw_statements = [raw_statements]
    elif not isinstance(raw_statements, list):
        raise MalformedPolicyError("Statement must be an object or a list of objects")

    statements = tuple(_parse_statement(s, i) for i, s in enumerate(raw_statements))
    return Policy(
        statements=statements,
        version=str(document.get("Version", "") or ""),
        policy_id=str(document.get("Id", "") or ""),
    )


def _parse_statement(raw: Any, index: int) -> Statement:
    if not isinstance(raw, Mapping):
        raise MalformedPolicyError(f"Statement {index} must be an object")

    effect = raw.get("Effect")
    if not isinstance(effect, str):
        raise MalformedPolicyError(f"Statement {index} is missing Effect")
    normalized = effect.strip().capitalize()
    if normalized not in EFFECTS:
        raise MalformedPolicyError(f"Statement {index} has invalid Effect {effect!r}")

    sid = raw.get("Sid", "")
    return Statement(
        effect=normalized,
        sid=sid if isinstance(sid, str) else str(sid),
        principal=_parse_principals(raw.get("Principal"), index, "Principal"),
        not_principal=_parse_principals(raw.get("NotPrincipal"), index, "NotPrincipal"),
        action=_string_set(raw.get("Action"), index, "Action"),
        not_action=_string_set(raw.get("NotAction"), index, "NotAction"),
        resource=_string_set(raw.get("Resource"), index, "Resource"),
        not_resource=_string_set(raw.get("NotResource"), index, "NotResource"),
        condition=_parse_conditions(raw.get("Condition"), index),
    )


def _parse_principals(raw: Any, index: int, field_name: str) -> Tuple[Principal, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        if raw.strip() == "*":
            return (Principal(PrincipalKind.ANY, "*"),)
        return (Principal(PrincipalKind.ACCOUNT_OR_USER, raw.strip()),)
    if not isinstance(raw, Mapping):
        raise MalformedPolicyError(f"Statement {index} {field_name} must be '*' or an object")

    principals: List[Principal] = []
    for key, values in raw.items():
        kind = PRINCIPAL_KEYS.get(key)
        if kind is None:
            raise MalformedPolicyError(f"Statement {index} {field_name} has unknown principal type {key!r}")
        for value in _string_set(values, index, f"{field_name}.{key}"):
            if kind is PrincipalKind.ACCOUNT_OR_USER and value == "*":
                principal = Principal(PrincipalKind.ANY, "*")
            else:
                principal = Principal(kind, value)
            if principal not in principals:
                principals.append(principal)
    return tuple(principals)


def _string_set(raw: Any, index: int, field_name: str) -> Tuple[str, ...]:
    """Normalize a string-or-list field into a de-duplicated tuple."""
    if raw is None:
        return ()
    if isinstance(raw, str):
        return (raw.strip(),)
    if isinstance(raw, list):
        result: List[str] = []
        for item in raw:
            if not isinstance(item, str):
                raise MalformedPolicyError(f"Statement {index} {field_name} must contain only strings")
            item = item.strip()
            if item not in result:
                result.append(item)
        return tuple(result)
    raise MalformedPolicyError(f"Statement {index} {field_name} must be a string or a list of strings")


def _condition_value(value: Any) -> str:
    # JSON spelling for booleans: "aws:SecureTransport": false -> "false"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _parse_conditions(raw: Any, index: int) -> Tuple[Condition, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, Mapping):
        raise MalformedPolicyError(f"Statement {index} Condition must be an object")

    conditions: List[Condition] = []
    for operator, block in raw.items():
        if not isinstance(block, Mapping):
            raise MalformedPolicyError(f"Statement {index} Condition {operator!r} must map keys to values")
        for key, values in block.items():
            if isinstance(values, list):
                if any(isinstance(v, (dict, list)) for v in values):
                    raise MalformedPolicyError(f"Statement {index} Condition {key!r} has nested values")
                rendered = tuple(_condition_value(v) for v in values)
            elif isinstance(values, Mapping) or values is None:
                raise MalformedPolicyError(f"Statement {index} Condition {key!r} has an invalid value")
            else:
                rendered = (_condition_value(values),)
            conditions.append(Condition(operator=str(operator), key=str(key), values=rendered))
    return tuple(conditions)
