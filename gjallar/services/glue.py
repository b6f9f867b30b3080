# ᛁᛊᚨ • Isa - Glue Data Catalog Policies
"""
Glue Data Catalog resource policy fetcher.

Glue keeps account-level catalog policies rather than one policy per
resource, so each policy is split by the resource ARNs its statements name.
"""

import json
from typing import Any, Dict, Iterable, List

from ..errors import MalformedPolicyError
from ..models import ResourcePolicyRecord
from ..policy import parse_policy
from .registry import ServiceFetcherBase, registry


@registry.register('glue')
class GlueFetcher(ServiceFetcherBase):
    SERVICE_NAME = 'glue'
    REQUIRED_PERMISSIONS = ['glue:GetResourcePolicies']

    def list_resources(self, region: str) -> List[Dict[str, Any]]:
        return self.cached_paginate(region, 'GetResourcePolicies', 'GetResourcePoliciesResponseList')

    def describe(self, resource: Dict[str, Any], region: str) -> Iterable[ResourcePolicyRecord]:
        policy_json = resource.get('PolicyInJson', '')
        if parse_policy(policy_json).is_empty():
            return

        document = json.loads(policy_json)
        statements = document.get('Statement', [])
        if isinstance(statements, dict):
            statements = [statements]

        by_resource: Dict[str, List[Dict[str, Any]]] = {}
        for statement in statements:
            resources = statement.get('Resource', [])
            if isinstance(resources, str):
                resources = [resources]
            if not isinstance(resources, list):
                raise MalformedPolicyError("Glue statement Resource must be a string or list")
            for arn in resources:
                by_resource.setdefault(arn, []).append(statement)

        for arn, grouped in by_resource.items():
            sub_document = {'Version': document.get('Version', '2012-10-17'), 'Statement': grouped}
            yield ResourcePolicyRecord(
                name=arn,
                arn=arn,
                region=region,
                policy_json=json.dumps(sub_document),
            )
