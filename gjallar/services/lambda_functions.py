# ᛚᛟᚴᛁ • Loki - Lambda Function Policies
"""Lambda function resource policy fetcher."""

from typing import Any, Dict, Iterable, List

from ..models import ResourcePolicyRecord
from .registry import ServiceFetcherBase, registry


@registry.register('lambda')
class LambdaFetcher(ServiceFetcherBase):
    SERVICE_NAME = 'lambda'
    REQUIRED_PERMISSIONS = ['lambda:ListFunctions', 'lambda:GetPolicy']
    NO_POLICY_ERRORS = ('ResourceNotFoundException',)

    def list_resources(self, region: str) -> List[Dict[str, Any]]:
        return self.cached_paginate(region, 'ListFunctions', 'Functions')

    def describe(self, resource: Dict[str, Any], region: str) -> Iterable[ResourcePolicyRecord]:
        name = resource['FunctionName']
        policy = self.cached_policy(
            region, 'GetPolicy', 'Policy', (name,),
            FunctionName=name,
        )
        yield ResourcePolicyRecord(
            name=name,
            arn=resource.get('FunctionArn', name),
            region=region,
            policy_json=policy,
        )
