# ᛞᚹᛖᚱᚷᚨᚱ • Dvergar - CodeBuild Project Policies
"""CodeBuild project resource policy fetcher."""

from typing import Iterable, List

from ..models import ResourcePolicyRecord
from .registry import ServiceFetcherBase, registry


@registry.register('codebuild')
class CodeBuildFetcher(ServiceFetcherBase):
    SERVICE_NAME = 'codebuild'
    REQUIRED_PERMISSIONS = ['codebuild:ListProjects', 'codebuild:BatchGetProjects', 'codebuild:GetResourcePolicy']
    NO_POLICY_ERRORS = ('ResourceNotFoundException',)

    def list_resources(self, region: str) -> List[str]:
        return self.cached_paginate(region, 'ListProjects', 'projects')

    def describe(self, resource: str, region: str) -> Iterable[ResourcePolicyRecord]:
        projects = self.cached_call(
            region, 'BatchGetProjects', identifiers=(resource,),
            transform=lambda r: r.get('projects', []),
            names=[resource],
        )
        if not projects:
            return
        project = projects[0]
        arn = project.get('arn', '')
        policy = self.cached_policy(
            region, 'GetResourcePolicy', 'policy', (resource,),
            resourceArn=arn,
        )
        yield ResourcePolicyRecord(
            name=project.get('name', resource),
            arn=arn,
            region=region,
            policy_json=policy,
        )
