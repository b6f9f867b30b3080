# ᛗᛁᛞᚷᚨᚱᛞ • ECR Repository Policies
"""ECR repository policy fetcher."""

from typing import Any, Dict, Iterable, List

from ..models import ResourcePolicyRecord
from .registry import ServiceFetcherBase, registry


@registry.register('ecr')
class ECRFetcher(ServiceFetcherBase):
    SERVICE_NAME = 'ecr'
    REQUIRED_PERMISSIONS = ['ecr:DescribeRepositories', 'ecr:GetRepositoryPolicy']
    NO_POLICY_ERRORS = ('RepositoryPolicyNotFoundException',)

    def list_resources(self, region: str) -> List[Dict[str, Any]]:
        return self.cached_paginate(region, 'DescribeRepositories', 'repositories')

    def describe(self, resource: Dict[str, Any], region: str) -> Iterable[ResourcePolicyRecord]:
        name = resource['repositoryName']
        policy = self.cached_policy(
            region, 'GetRepositoryPolicy', 'policyText', (name,),
            repositoryName=name,
        )
        yield ResourcePolicyRecord(
            name=name,
            arn=resource.get('repositoryArn', name),
            region=region,
            policy_json=policy,
        )
