# ᛊᛟᚹᛁᛚᛟ • Sowilo - OpenSearch Domain Access Policies
"""
OpenSearch domain access policy fetcher.

A domain without fine-grained access control is reported public whatever
its access policy says.
"""

from typing import Any, Dict, Iterable, List

from ..models import ResourcePolicyRecord
from .apigateway import unescape_policy
from .registry import ServiceFetcherBase, registry


@registry.register('opensearch')
class OpenSearchFetcher(ServiceFetcherBase):
    SERVICE_NAME = 'opensearch'
    AVAILABILITY_NAME = 'es'
    REQUIRED_PERMISSIONS = ['es:ListDomainNames', 'es:DescribeDomain', 'es:DescribeDomainConfig']

    def list_resources(self, region: str) -> List[Dict[str, Any]]:
        return self.cached_call(
            region, 'ListDomainNames',
            transform=lambda r: r.get('DomainNames', []),
        )

    def describe(self, resource: Dict[str, Any], region: str) -> Iterable[ResourcePolicyRecord]:
        domain_name = resource['DomainName']
        config = self.cached_call(
            region, 'DescribeDomainConfig', identifiers=(domain_name,),
            transform=lambda r: r.get('DomainConfig', {}),
            DomainName=domain_name,
        )
        security = (config.get('AdvancedSecurityOptions') or {}).get('Options') or {}
        fine_grained = bool(security.get('Enabled'))

        status = self.cached_call(
            region, 'DescribeDomain', identifiers=(domain_name,),
            transform=lambda r: r.get('DomainStatus', {}),
            DomainName=domain_name,
        )
        yield ResourcePolicyRecord(
            name=domain_name,
            arn=status.get('ARN', domain_name),
            region=region,
            policy_json=unescape_policy(status.get('AccessPolicies') or ''),
            public_override=not fine_grained,
            emit_without_policy=True,
        )
