# ᚲᛖᚾᚨᛉ • Kenaz - KMS Key Policies
"""
KMS key policy fetcher.

Opt-in: every key carries a policy, so this doubles the number of calls in
large accounts.
"""

from typing import Any, Dict, Iterable, List

from ..models import ResourcePolicyRecord
from .registry import ServiceFetcherBase, registry


@registry.register('kms')
class KMSFetcher(ServiceFetcherBase):
    SERVICE_NAME = 'kms'
    OPT_IN = True
    REQUIRED_PERMISSIONS = ['kms:ListKeys', 'kms:GetKeyPolicy']

    def list_resources(self, region: str) -> List[Dict[str, Any]]:
        return self.cached_paginate(region, 'ListKeys', 'Keys')

    def describe(self, resource: Dict[str, Any], region: str) -> Iterable[ResourcePolicyRecord]:
        key_id = resource['KeyId']
        policy = self.cached_policy(
            region, 'GetKeyPolicy', 'Policy', (key_id,),
            KeyId=key_id,
            PolicyName='default',
        )
        yield ResourcePolicyRecord(
            name=key_id,
            arn=resource.get('KeyArn', key_id),
            region=region,
            policy_json=policy,
        )
