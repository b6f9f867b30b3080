# ᚠᛖᛏᚲᚺᛖᚱᛊ • Fetchers - Service-Specific Policy Sources
"""
Resource policy fetchers, one module per AWS service.

Importing this package registers every fetcher with ``registry``.
"""

from .registry import ServiceFetcherBase, ServiceRegistry, registry
from .sns import SNSFetcher
from .sqs import SQSFetcher
from .ecr import ECRFetcher
from .codebuild import CodeBuildFetcher
from .lambda_functions import LambdaFetcher
from .efs import EFSFetcher
from .secretsmanager import SecretsManagerFetcher
from .glue import GlueFetcher
from .kms import KMSFetcher
from .apigateway import APIGatewayFetcher
from .vpc_endpoints import VPCEndpointFetcher
from .opensearch import OpenSearchFetcher
from .s3 import S3Fetcher

__all__ = [
    'ServiceFetcherBase',
    'ServiceRegistry',
    'registry',
    'SNSFetcher',
    'SQSFetcher',
    'ECRFetcher',
    'CodeBuildFetcher',
    'LambdaFetcher',
    'EFSFetcher',
    'SecretsManagerFetcher',
    'GlueFetcher',
    'KMSFetcher',
    'APIGatewayFetcher',
    'VPCEndpointFetcher',
    'OpenSearchFetcher',
    'S3Fetcher',
]
