# ᚺᚢᚷᛁᚾᚾ • Huginn - SNS Topic Policies
"""SNS topic policy fetcher."""

from typing import Any, Dict, Iterable, List

from ..models import ResourcePolicyRecord
from .registry import ServiceFetcherBase, registry


def split_arn(arn: str):
    """Return (region, resource) from an ARN, or ('', arn) when it does not parse."""
    parts = arn.split(':', 5)
    if len(parts) < 6 or parts[0] != 'arn':
        return '', arn
    return parts[3], parts[5]


@registry.register('sns')
class SNSFetcher(ServiceFetcherBase):
    SERVICE_NAME = 'sns'
    REQUIRED_PERMISSIONS = ['sns:ListTopics', 'sns:GetTopicAttributes']

    def list_resources(self, region: str) -> List[Dict[str, Any]]:
        return self.cached_paginate(region, 'ListTopics', 'Topics')

    def describe(self, resource: Dict[str, Any], region: str) -> Iterable[ResourcePolicyRecord]:
        topic_arn = resource['TopicArn']
        attributes = self.cached_call(
            region, 'GetTopicAttributes', identifiers=(topic_arn,),
            transform=lambda r: r.get('Attributes', {}),
            TopicArn=topic_arn,
        )
        arn_region, name = split_arn(topic_arn)
        yield ResourcePolicyRecord(
            name=name,
            arn=topic_arn,
            region=arn_region or region,
            policy_json=attributes.get('Policy', ''),
        )
