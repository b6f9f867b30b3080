# ᛃᛟᚱᛗᚢᚾᚷᚨᚾᛞᚱ • Jörmungandr - S3 Bucket Policies
"""
S3 bucket policy fetcher.

Buckets are listed once for the whole account (the listing is not
region-partitioned); each bucket's policy is then read from its own region.
"""

from typing import Any, Dict, Iterable, List

from ..models import ResourcePolicyRecord
from .registry import ServiceFetcherBase, registry

GLOBAL_REGION = 'us-east-1'

# GetBucketLocation returns legacy constraint names for some regions
LEGACY_LOCATIONS = {
    None: 'us-east-1',
    '': 'us-east-1',
    'EU': 'eu-west-1',
}


@registry.register('s3')
class S3Fetcher(ServiceFetcherBase):
    SERVICE_NAME = 's3'
    GLOBAL = True
    REQUIRED_PERMISSIONS = ['s3:ListAllMyBuckets', 's3:GetBucketLocation', 's3:GetBucketPolicy']
    NO_POLICY_ERRORS = ('NoSuchBucketPolicy',)

    def list_resources(self, region: str = '') -> List[Dict[str, Any]]:
        client = self.client(GLOBAL_REGION)
        if client.can_paginate('list_buckets'):
            return self.cached_paginate(GLOBAL_REGION, 'ListBuckets', 'Buckets')
        return self.cached_call(
            GLOBAL_REGION, 'ListBuckets',
            transform=lambda r: r.get('Buckets', []),
        )

    def bucket_region(self, name: str) -> str:
        constraint = self.cached_call(
            GLOBAL_REGION, 'GetBucketLocation', identifiers=(name,),
            transform=lambda r: r.get('LocationConstraint'),
            Bucket=name,
        )
        return LEGACY_LOCATIONS.get(constraint, constraint)

    def describe(self, resource: Dict[str, Any], region: str = '') -> Iterable[ResourcePolicyRecord]:
        name = resource['Name']
        bucket_region = self.bucket_region(name)
        policy = self.cached_policy(
            bucket_region, 'GetBucketPolicy', 'Policy', (name,),
            Bucket=name,
        )
        yield ResourcePolicyRecord(
            name=name,
            arn=f"arn:aws:s3:::{name}",
            region=bucket_region,
            policy_json=policy,
        )
