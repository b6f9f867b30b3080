# ᛒᛁᚠᚱᛟᛊᛏ • Bifröst - API Gateway REST API Policies
"""
API Gateway REST API policy fetcher.

REGIONAL and EDGE endpoints are reachable from the internet by
construction, so they are reported public without evaluating the policy.
Private APIs are classified by their resource policy.
"""

from typing import Any, Dict, Iterable, List

from ..models import ResourcePolicyRecord
from .registry import ServiceFetcherBase, registry

PUBLIC_ENDPOINT_TYPES = ('REGIONAL', 'EDGE')


def public_endpoint_types(rest_api: Dict[str, Any]) -> List[str]:
    types = (rest_api.get('endpointConfiguration') or {}).get('types') or []
    return [t for t in types if t in PUBLIC_ENDPOINT_TYPES]


def unescape_policy(policy: str) -> str:
    """API Gateway returns the policy with escaped quotes."""
    return policy.replace('\\"', '"')


@registry.register('apigateway')
class APIGatewayFetcher(ServiceFetcherBase):
    SERVICE_NAME = 'apigateway'
    REQUIRED_PERMISSIONS = ['apigateway:GET']

    def list_resources(self, region: str) -> List[Dict[str, Any]]:
        return self.cached_paginate(region, 'GetRestApis', 'items')

    def api_arn(self, rest_api: Dict[str, Any], region: str) -> str:
        return f"arn:aws:execute-api:{region}:{self.account_id}:{rest_api['id']}/*"

    def describe(self, resource: Dict[str, Any], region: str) -> Iterable[ResourcePolicyRecord]:
        policy = resource.get('policy') or ''
        public_types = public_endpoint_types(resource)
        if public_types:
            yield ResourcePolicyRecord(
                name=resource.get('name', resource['id']),
                arn=self.api_arn(resource, region),
                region=region,
                policy_json=policy,
                public_override=True,
                emit_without_policy=True,
                short_circuit_summary=f"{'/'.join(public_types)} endpoint reachable from the internet",
            )
            return

        yield ResourcePolicyRecord(
            name=resource.get('name', resource['id']),
            arn=self.api_arn(resource, region),
            region=region,
            policy_json=unescape_policy(policy),
            emit_without_policy=True,
        )
