# ᛊᛖᚲᚱᛖᛏ • Secrets Manager Secret Policies
"""Secrets Manager resource policy fetcher."""

from typing import Any, Dict, Iterable, List

from ..models import ResourcePolicyRecord
from .registry import ServiceFetcherBase, registry


@registry.register('secretsmanager')
class SecretsManagerFetcher(ServiceFetcherBase):
    SERVICE_NAME = 'secretsmanager'
    REQUIRED_PERMISSIONS = ['secretsmanager:ListSecrets', 'secretsmanager:GetResourcePolicy']
    NO_POLICY_ERRORS = ('ResourceNotFoundException',)

    def list_resources(self, region: str) -> List[Dict[str, Any]]:
        return self.cached_paginate(region, 'ListSecrets', 'SecretList')

    def describe(self, resource: Dict[str, Any], region: str) -> Iterable[ResourcePolicyRecord]:
        arn = resource['ARN']
        policy = self.cached_policy(
            region, 'GetResourcePolicy', 'ResourcePolicy', (arn,),
            SecretId=arn,
        )
        yield ResourcePolicyRecord(
            name=resource.get('Name', arn),
            arn=arn,
            region=region,
            policy_json=policy,
        )
