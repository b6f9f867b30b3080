# ᚷᛖᛒᛟ • Gebo - VPC Endpoint Policies
"""VPC endpoint policy fetcher."""

from typing import Any, Dict, Iterable, List

from ..models import ResourcePolicyRecord
from .registry import ServiceFetcherBase, registry


@registry.register('vpc-endpoints')
class VPCEndpointFetcher(ServiceFetcherBase):
    SERVICE_NAME = 'vpc-endpoints'
    CLIENT_NAME = 'ec2'
    REQUIRED_PERMISSIONS = ['ec2:DescribeVpcEndpoints']

    def list_resources(self, region: str) -> List[Dict[str, Any]]:
        return self.cached_paginate(region, 'DescribeVpcEndpoints', 'VpcEndpoints')

    def describe(self, resource: Dict[str, Any], region: str) -> Iterable[ResourcePolicyRecord]:
        endpoint_id = resource['VpcEndpointId']
        yield ResourcePolicyRecord(
            name=endpoint_id,
            arn=f"arn:aws:ec2:{region}:{self.account_id}:vpc-endpoint/{endpoint_id}",
            region=region,
            policy_json=resource.get('PolicyDocument') or '',
            emit_without_policy=True,
        )
