# ᛟᛞᛁᚾ • Odin's Eye - Resource Trust Scanner
"""
Resource Trust Scanner - fans policy fetches out across regions and services.

One dispatch task per region asks the availability oracle which registered
services exist there and schedules one fetch task per available service.
A single extra task lists the global services (S3 buckets) once. Every
task runs on the same bounded thread pool, so the number of in-flight
remote operations never exceeds the configured concurrency.

Findings are sent to a ResultAggregator; the caller gets the ranked list
back once every task has finished.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Type

from gjallar.aggregator import ResultAggregator
from gjallar.cache import TTLCache
from gjallar.errors import ConfigurationError, MalformedPolicyError, TransientFetchError
from gjallar.models import Finding, ResourcePolicyRecord, parse_table_cols
from gjallar.policy import classify, parse_policy
from gjallar.services import ServiceFetcherBase, ServiceRegistry
from gjallar.services import registry as default_registry

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 10
DEFAULT_OUTPUT_DIRECTORY = str(Path.home() / '.gjallar')
OUTPUT_TYPES = ('brief', 'wide')


def validate_scan_options(concurrency: int, table_cols: Optional[str], output_type: str) -> None:
    """Check the region-independent scan options. Raises ConfigurationError."""
    if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency < 1:
        raise ConfigurationError(f"concurrency must be a positive integer, got {concurrency!r}")
    if output_type not in OUTPUT_TYPES:
        raise ConfigurationError(f"output type must be one of {', '.join(OUTPUT_TYPES)}")
    try:
        parse_table_cols(table_cols, output_type)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


@dataclass
class ScanConfig:
    """Plain configuration values for one resource-trusts scan."""
    regions: List[str]
    concurrency: int = DEFAULT_CONCURRENCY
    include_kms: bool = False
    table_cols: Optional[str] = None
    output_type: str = 'brief'
    output_directory: str = DEFAULT_OUTPUT_DIRECTORY

    def __post_init__(self):
        if not self.regions:
            raise ConfigurationError("at least one region is required")
        validate_scan_options(self.concurrency, self.table_cols, self.output_type)

    @property
    def columns(self) -> List[str]:
        return parse_table_cols(self.table_cols, self.output_type)


@dataclass(frozen=True)
class CounterSnapshot:
    total: int = 0
    pending: int = 0
    executing: int = 0
    complete: int = 0
    error: int = 0


class ScanCounters:
    """
    Task counters shared by every scan thread.

    All mutation happens under one lock. ``complete`` counts every finished
    task, failed or not; ``error`` counts failed tasks plus skipped
    resources.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._total = 0
        self._pending = 0
        self._executing = 0
        self._complete = 0
        self._error = 0

    def task_scheduled(self) -> None:
        with self._lock:
            self._total += 1
            self._pending += 1

    def task_started(self) -> None:
        with self._lock:
            self._pending -= 1
            self._executing += 1

    def task_finished(self, failed: bool = False) -> None:
        with self._lock:
            self._executing -= 1
            self._complete += 1
            if failed:
                self._error += 1

    def resource_error(self) -> None:
        with self._lock:
            self._error += 1

    def snapshot(self) -> CounterSnapshot:
        with self._lock:
            return CounterSnapshot(
                total=self._total,
                pending=self._pending,
                executing=self._executing,
                complete=self._complete,
                error=self._error,
            )


class ScanState(Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"
    RUNNING = "running"
    DRAINING = "draining"
    DONE = "done"


def build_finding(record: ResourcePolicyRecord, account_id: str) -> Optional[Finding]:
    """
    Classify one fetched record.

    Returns None for a resource without a policy unless its service reports
    such resources anyway.

    Raises:
        MalformedPolicyError: The record's policy does not parse
    """
    if record.short_circuit_summary is not None:
        public = True if record.public_override is None else record.public_override
        return Finding(
            account_id=account_id,
            name=record.name,
            arn=record.arn,
            region=record.region,
            raw_policy_json=record.policy_json,
            public=public,
            interesting=True,
            summary=record.short_circuit_summary,
        )

    policy = parse_policy(record.policy_json)
    if policy.is_empty():
        if not record.emit_without_policy:
            return None
        public = bool(record.public_override)
        return Finding(
            account_id=account_id,
            name=record.name,
            arn=record.arn,
            region=record.region,
            raw_policy_json=record.policy_json,
            public=public,
            interesting=public,
        )

    classification = classify(policy, account_id)
    public = classification.public if record.public_override is None else record.public_override
    return Finding(
        account_id=account_id,
        name=record.name,
        arn=record.arn,
        region=record.region,
        policy=policy,
        raw_policy_json=record.policy_json,
        public=public,
        interesting=public or classification.interesting,
        summary=classification.summary,
    )


class ResourceTrustsScanner:
    """
    Bounded-concurrency scan over regions and registered services.

    A scanner runs once: Idle -> Dispatching -> Running -> Draining -> Done.
    """

    def __init__(
        self,
        session: Any,
        account_id: str,
        config: ScanConfig,
        oracle: Any,
        cache: Optional[TTLCache] = None,
        registry: Optional[ServiceRegistry] = None,
        reporter_factory: Optional[Callable[[ScanCounters], Any]] = None,
    ):
        """
        Args:
            session: boto3 Session handed to every fetcher
            account_id: Caller account ID, the reference for "own account"
            config: ScanConfig
            oracle: Object with ``is_service_available(service, region) -> bool``
            cache: Shared TTLCache (a fresh one when omitted)
            registry: ServiceRegistry to dispatch from (the global one when omitted)
            reporter_factory: Builds a progress reporter (``start``/``stop``) over the counters
        """
        self.session = session
        self.account_id = account_id
        self.config = config
        self.oracle = oracle
        self.cache = cache if cache is not None else TTLCache()
        self.registry = registry if registry is not None else default_registry
        self.counters = ScanCounters()
        self.aggregator = ResultAggregator()
        self.reporter = reporter_factory(self.counters) if reporter_factory else None
        self.state = ScanState.IDLE

        self._fetchers: Dict[str, ServiceFetcherBase] = {}
        self._fetchers_lock = threading.Lock()

    def _fetcher(self, name: str, fetcher_class: Type[ServiceFetcherBase]) -> ServiceFetcherBase:
        with self._fetchers_lock:
            fetcher = self._fetchers.get(name)
            if fetcher is None:
                fetcher = fetcher_class(self.session, self.account_id, self.cache)
                self._fetchers[name] = fetcher
            return fetcher

    def _is_available(self, fetcher_class: Type[ServiceFetcherBase], region: str) -> bool:
        try:
            return bool(self.oracle.is_service_available(fetcher_class.availability_name(), region))
        except Exception as e:
            logger.error("Availability check failed for %s in %s: %s", fetcher_class.availability_name(), region, e)
            return False

    def _schedule(
        self,
        pool: ThreadPoolExecutor,
        name: str,
        fetcher_class: Type[ServiceFetcherBase],
        region: str,
    ) -> Future:
        self.counters.task_scheduled()
        return pool.submit(self._run_task, name, fetcher_class, region)

    def _dispatch_region(self, pool: ThreadPoolExecutor, region: str) -> List[Future]:
        """Schedule a task for every service available in ``region``; does not wait for them."""
        futures = []
        for name, fetcher_class in self.registry.regional_services(include_opt_in=self.config.include_kms):
            if self._is_available(fetcher_class, region):
                futures.append(self._schedule(pool, name, fetcher_class, region))
            else:
                logger.debug("%s not available in %s", name, region)
        return futures

    def _run_task(self, name: str, fetcher_class: Type[ServiceFetcherBase], region: str) -> int:
        """List and classify every resource of one service in one region."""
        self.counters.task_started()
        failed = False
        emitted = 0
        try:
            fetcher = self._fetcher(name, fetcher_class)
            resources = fetcher.list_resources(region)
            for resource in resources:
                try:
                    for record in fetcher.describe(resource, region):
                        finding = build_finding(record, self.account_id)
                        if finding is not None:
                            self.aggregator.send(finding)
                            emitted += 1
                except (TransientFetchError, MalformedPolicyError) as e:
                    logger.error("Skipping %s resource in %s: %s", name, region or "global", e)
                    self.counters.resource_error()
        except TransientFetchError as e:
            logger.error("Task %s in %s failed: %s", name, region or "global", e)
            if fetcher_class.REQUIRED_PERMISSIONS:
                logger.error("Task %s requires: %s", name, ", ".join(fetcher_class.REQUIRED_PERMISSIONS))
            failed = True
        except Exception as e:
            logger.error("Task %s in %s failed unexpectedly: %s", name, region or "global", e, exc_info=True)
            failed = True
        finally:
            self.counters.task_finished(failed)
        logger.debug("Task %s in %s emitted %d findings", name, region or "global", emitted)
        return emitted

    def run(self) -> List[Finding]:
        """
        Run the scan to completion and return the ranked findings.

        There is no early abort: every scheduled task runs until it finishes
        or fails on its own.
        """
        if self.state is not ScanState.IDLE:
            raise RuntimeError(f"scanner already used (state: {self.state.value})")

        self.state = ScanState.DISPATCHING
        logger.info(
            "Starting resource-trusts scan: account=%s, regions=%d, concurrency=%d",
            self.account_id, len(self.config.regions), self.config.concurrency,
        )
        self.aggregator.start()
        if self.reporter is not None:
            self.reporter.start()

        try:
            with ThreadPoolExecutor(max_workers=self.config.concurrency, thread_name_prefix="gjallar") as pool:
                service_futures: List[Future] = []
                for name, fetcher_class in self.registry.global_services():
                    service_futures.append(self._schedule(pool, name, fetcher_class, ""))

                region_futures = [pool.submit(self._dispatch_region, pool, r) for r in self.config.regions]
                for future in region_futures:
                    service_futures.extend(future.result())

                self.state = ScanState.RUNNING
                wait(service_futures)
        finally:
            self.state = ScanState.DRAINING
            findings = self.aggregator.close()
            if self.reporter is not None:
                self.reporter.stop()

        self.state = ScanState.DONE
        snap = self.counters.snapshot()
        logger.info(
            "Scan finished: %d/%d tasks, %d errors, %d findings (cache: %s)",
            snap.complete, snap.total, snap.error, len(findings), self.cache.stats,
        )
        return findings
