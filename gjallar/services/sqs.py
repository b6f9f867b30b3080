# ᚱᚨᛏᚨᛏᛟᛊᚲ • Ratatoskr - SQS Queue Policies
"""SQS queue policy fetcher."""

from typing import Iterable, List

from ..models import ResourcePolicyRecord
from .registry import ServiceFetcherBase, registry


@registry.register('sqs')
class SQSFetcher(ServiceFetcherBase):
    SERVICE_NAME = 'sqs'
    REQUIRED_PERMISSIONS = ['sqs:ListQueues', 'sqs:GetQueueAttributes']

    def list_resources(self, region: str) -> List[str]:
        return self.cached_paginate(region, 'ListQueues', 'QueueUrls')

    def describe(self, resource: str, region: str) -> Iterable[ResourcePolicyRecord]:
        queue_url = resource
        attributes = self.cached_call(
            region, 'GetQueueAttributes', identifiers=(queue_url,),
            transform=lambda r: r.get('Attributes', {}),
            QueueUrl=queue_url,
            AttributeNames=['Policy', 'QueueArn'],
        )
        yield ResourcePolicyRecord(
            name=queue_url.rstrip('/').split('/')[-1],
            arn=attributes.get('QueueArn', queue_url),
            region=region,
            policy_json=attributes.get('Policy', ''),
        )
