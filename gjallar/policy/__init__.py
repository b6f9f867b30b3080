# ᛚᚨᚷᚢᛉ • Laguz - Policy Parsing and Classification
"""Resource policy model, parser and trust classifier."""

from gjallar.policy.models import (
    Condition,
    EMPTY_POLICY,
    Policy,
    Principal,
    PrincipalKind,
    Statement,
    parse_policy,
)
from gjallar.policy.classifier import (
    Classification,
    SCOPING_CONDITION_KEYS,
    classify,
    is_interesting,
    is_public,
    summarize_policy,
    summarize_statement,
)

__all__ = [
    'Condition',
    'EMPTY_POLICY',
    'Policy',
    'Principal',
    'PrincipalKind',
    'Statement',
    'parse_policy',
    'Classification',
    'SCOPING_CONDITION_KEYS',
    'classify',
    'is_interesting',
    'is_public',
    'summarize_policy',
    'summarize_statement',
]
