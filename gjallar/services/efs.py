# ᚾᛁᚠᛚᚺᛖᛁᛗ • Niflheim - EFS File System Policies
"""EFS file system policy fetcher."""

from typing import Any, Dict, Iterable, List

from ..models import ResourcePolicyRecord
from .registry import ServiceFetcherBase, registry


@registry.register('efs')
class EFSFetcher(ServiceFetcherBase):
    SERVICE_NAME = 'efs'
    REQUIRED_PERMISSIONS = ['elasticfilesystem:DescribeFileSystems', 'elasticfilesystem:DescribeFileSystemPolicy']
    NO_POLICY_ERRORS = ('PolicyNotFound', 'FileSystemNotFound')

    def list_resources(self, region: str) -> List[Dict[str, Any]]:
        return self.cached_paginate(region, 'DescribeFileSystems', 'FileSystems')

    def describe(self, resource: Dict[str, Any], region: str) -> Iterable[ResourcePolicyRecord]:
        fs_id = resource['FileSystemId']
        policy = self.cached_policy(
            region, 'DescribeFileSystemPolicy', 'Policy', (fs_id,),
            FileSystemId=fs_id,
        )
        yield ResourcePolicyRecord(
            name=resource.get('Name') or fs_id,
            arn=resource.get('FileSystemArn', fs_id),
            region=region,
            policy_json=policy,
        )
