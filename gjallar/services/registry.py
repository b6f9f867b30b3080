# ᚱᚨᛁᛞᛟ • Raido - Service Registry
"""
Service registry for resource policy fetchers.

Each supported AWS service contributes one fetcher class, registered under
its service name. The scanner walks the registry once per region instead
of hardcoding a branch per service, so adding a service is one new module.

Usage:
    @registry.register('sqs')
    class SQSFetcher(ServiceFetcherBase):
        ...
"""

import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Type

from botocore import xform_name
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from gjallar.cache import TTLCache, cache_key
from gjallar.errors import TransientFetchError
from gjallar.models import ResourcePolicyRecord

logger = logging.getLogger(__name__)

MAX_RETRIES = 3


def default_client_config() -> Config:
    return Config(retries={'max_attempts': MAX_RETRIES, 'mode': 'standard'})


class ServiceFetcherBase:
    """
    Base class for per-service fetchers.

    A fetcher answers two questions for one account: which resources exist
    in a region (``list_resources``), and what policy each one carries
    (``describe``). Every remote call goes through the shared cache and is
    fully paginated before it is stored.
    """

    SERVICE_NAME: str = ""
    CLIENT_NAME: str = ""          # boto3 client name, defaults to SERVICE_NAME
    AVAILABILITY_NAME: str = ""    # region-map name, defaults to CLIENT_NAME
    GLOBAL: bool = False
    OPT_IN: bool = False
    REQUIRED_PERMISSIONS: List[str] = []
    NO_POLICY_ERRORS: Tuple[str, ...] = ()

    def __init__(
        self,
        session: Any,
        account_id: str,
        cache: TTLCache,
        client_config: Optional[Config] = None,
    ):
        """
        Args:
            session: boto3 Session for the scanned account
            account_id: Caller account ID (part of every cache key)
            cache: Shared TTL cache
            client_config: botocore Config for created clients
        """
        self.session = session
        self.account_id = account_id
        self.cache = cache
        self.client_config = client_config or default_client_config()
        self._clients: Dict[str, Any] = {}
        self._clients_lock = threading.Lock()

    @classmethod
    def client_name(cls) -> str:
        return cls.CLIENT_NAME or cls.SERVICE_NAME

    @classmethod
    def availability_name(cls) -> str:
        return cls.AVAILABILITY_NAME or cls.client_name()

    def client(self, region: str):
        """Lazily create one boto3 client per region."""
        with self._clients_lock:
            client = self._clients.get(region)
            if client is None:
                client = self.session.client(
                    self.client_name(),
                    region_name=region or None,
                    config=self.client_config,
                )
                self._clients[region] = client
            return client

    def _key(self, operation: str, region: str, identifiers: Sequence[Any]) -> str:
        return cache_key(self.account_id, self.SERVICE_NAME, operation, region, *identifiers)

    def call(self, region: str, operation: str, **kwargs) -> Dict[str, Any]:
        """Invoke one client operation, wrapping AWS errors in TransientFetchError."""
        method = getattr(self.client(region), xform_name(operation))
        try:
            response = method(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise TransientFetchError(self.SERVICE_NAME, operation, region, str(e)) from e
        response.pop('ResponseMetadata', None)
        return response

    def cached_call(
        self,
        region: str,
        operation: str,
        identifiers: Sequence[Any] = (),
        transform: Optional[Callable[[Dict[str, Any]], Any]] = None,
        **kwargs,
    ) -> Any:
        """Cached single (non-paginated) call; ``transform`` picks what is stored."""
        def fetch():
            response = self.call(region, operation, **kwargs)
            return transform(response) if transform else response
        return self.cache.get_or_fetch(self._key(operation, region, identifiers), fetch)

    def cached_paginate(
        self,
        region: str,
        operation: str,
        result_key: str,
        identifiers: Sequence[Any] = (),
        **kwargs,
    ) -> List[Any]:
        """Drain every page of ``operation`` and cache the accumulated ``result_key`` list."""
        def fetch():
            client = self.client(region)
            items: List[Any] = []
            try:
                paginator = client.get_paginator(xform_name(operation))
                for page in paginator.paginate(**kwargs):
                    items.extend(page.get(result_key, []) or [])
            except (ClientError, BotoCoreError) as e:
                raise TransientFetchError(self.SERVICE_NAME, operation, region, str(e)) from e
            logger.debug("%s %s %s: %d items", self.SERVICE_NAME, operation, region, len(items))
            return items
        return self.cache.get_or_fetch(self._key(operation, region, identifiers), fetch)

    def cached_policy(
        self,
        region: str,
        operation: str,
        policy_key: str,
        identifiers: Sequence[Any],
        **kwargs,
    ) -> str:
        """
        Fetch a raw policy string.

        Error codes listed in NO_POLICY_ERRORS mean "no policy attached" and
        yield an empty string; any other failure raises TransientFetchError.
        """
        def fetch():
            try:
                response = getattr(self.client(region), xform_name(operation))(**kwargs)
            except ClientError as e:
                code = e.response.get('Error', {}).get('Code', '')
                if code in self.NO_POLICY_ERRORS:
                    return ""
                raise TransientFetchError(self.SERVICE_NAME, operation, region, str(e)) from e
            except BotoCoreError as e:
                raise TransientFetchError(self.SERVICE_NAME, operation, region, str(e)) from e
            return response.get(policy_key) or ""
        return self.cache.get_or_fetch(self._key(operation, region, identifiers), fetch)

    def list_resources(self, region: str) -> List[Any]:
        """Enumerate candidate resources in a region (fully paginated)."""
        raise NotImplementedError

    def describe(self, resource: Any, region: str) -> Iterable[ResourcePolicyRecord]:
        """Resolve one listed resource into zero or more policy records."""
        raise NotImplementedError


class ServiceRegistry:
    """
    Maps service name -> fetcher class.

    The module-level ``registry`` is what the service modules register into;
    tests build their own instance.
    """

    def __init__(self):
        self._fetchers: Dict[str, Type[ServiceFetcherBase]] = {}

    def register(self, service_name: Optional[str] = None):
        """Class decorator registering a fetcher under ``service_name``."""
        def decorator(fetcher_class: Type[ServiceFetcherBase]):
            name = service_name or fetcher_class.SERVICE_NAME
            self._fetchers[name] = fetcher_class
            logger.debug("Registered fetcher for %s", name)
            return fetcher_class
        return decorator

    def regional_services(self, include_opt_in: bool = False) -> List[Tuple[str, Type[ServiceFetcherBase]]]:
        """Per-region entries, opt-in services only when asked for."""
        return [
            (name, cls) for name, cls in self._fetchers.items()
            if not cls.GLOBAL and (include_opt_in or not cls.OPT_IN)
        ]

    def global_services(self) -> List[Tuple[str, Type[ServiceFetcherBase]]]:
        return [(name, cls) for name, cls in self._fetchers.items() if cls.GLOBAL]


registry = ServiceRegistry()
