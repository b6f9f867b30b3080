"""Tests for the resource trust scanner."""

import json
import logging

import pytest

from gjallar.cache import TTLCache
from gjallar.errors import ConfigurationError, TransientFetchError
from gjallar.models import ResourcePolicyRecord
from gjallar.scanner import ResourceTrustsScanner, ScanConfig, ScanState, build_finding
from gjallar.services import ServiceFetcherBase, ServiceRegistry
from gjallar.services.apigateway import APIGatewayFetcher
from gjallar.services.glue import GlueFetcher

ACCOUNT = "111122223333"

PUBLIC_POLICY = json.dumps({"Statement": [{"Effect": "Allow", "Principal": "*", "Action": "*"}]})
PRIVATE_POLICY = json.dumps({"Statement": [{
    "Effect": "Allow", "Principal": {"Service": "logs.amazonaws.com"}, "Action": "*"}]})


class FakeFetcher(ServiceFetcherBase):
    """Two resources per region: one public, one private."""

    def list_resources(self, region):
        return [f"{self.SERVICE_NAME}-{region}-public", f"{self.SERVICE_NAME}-{region}-private"]

    def describe(self, resource, region):
        yield ResourcePolicyRecord(
            name=resource,
            arn=f"arn:aws:{self.SERVICE_NAME}:{region}:{ACCOUNT}:{resource}",
            region=region,
            policy_json=PUBLIC_POLICY if resource.endswith("public") else PRIVATE_POLICY,
        )


def make_fetcher(name, base=FakeFetcher, **attrs):
    return type(f"Fake{name.title()}Fetcher", (base,), dict(SERVICE_NAME=name, **attrs))


class FakeGlobalFetcher(FakeFetcher):
    SERVICE_NAME = "buckets"
    GLOBAL = True

    def list_resources(self, region):
        return ["bucket-a", "bucket-b", "bucket-public"]

    def describe(self, resource, region):
        yield ResourcePolicyRecord(
            name=resource,
            arn=f"arn:aws:s3:::{resource}",
            region="eu-west-1",
            policy_json=PUBLIC_POLICY if resource.endswith("public") else PRIVATE_POLICY,
        )


class FakeOracle:
    def __init__(self, available=None, broken=()):
        self.available = available
        self.broken = set(broken)
        self.calls = []

    def is_service_available(self, service, region):
        self.calls.append((service, region))
        if service in self.broken:
            raise RuntimeError("endpoint data unavailable")
        return self.available is None or service in self.available


def build_registry(*fetcher_classes):
    registry = ServiceRegistry()
    for cls in fetcher_classes:
        registry.register(cls.SERVICE_NAME)(cls)
    return registry


def run_scan(registry, regions, concurrency=4, oracle=None, **config):
    scanner = ResourceTrustsScanner(
        session=None,
        account_id=ACCOUNT,
        config=ScanConfig(regions=regions, concurrency=concurrency, **config),
        oracle=oracle or FakeOracle(),
        cache=TTLCache(),
        registry=registry,
    )
    return scanner, scanner.run()


@pytest.mark.parametrize("concurrency", [1, 3, 16])
def test_task_count_and_findings_do_not_depend_on_concurrency(concurrency) -> None:
    """K regions x M services plus the global task are scheduled at any concurrency."""

    registry = build_registry(make_fetcher("alpha"), make_fetcher("beta"), make_fetcher("gamma"),
                              FakeGlobalFetcher)
    regions = ["us-east-1", "us-west-2", "eu-west-1", "ap-south-1"]

    scanner, findings = run_scan(registry, regions, concurrency=concurrency)

    snap = scanner.counters.snapshot()
    assert snap.total == len(regions) * 3 + 1
    assert snap.complete == snap.total
    assert snap.pending == 0
    assert snap.executing == 0
    assert snap.error == 0
    assert len(findings) == len(regions) * 3 * 2 + 3
    assert scanner.state is ScanState.DONE


def test_results_are_ranked_interesting_first() -> None:
    """All interesting findings precede the uninteresting ones."""

    registry = build_registry(make_fetcher("alpha"), make_fetcher("beta"), FakeGlobalFetcher)

    _, findings = run_scan(registry, ["us-east-1", "eu-west-1"], concurrency=2)

    flags = [f.interesting for f in findings]
    assert flags == sorted(flags, reverse=True)
    interesting = [f.arn for f in findings if f.interesting]
    assert interesting == sorted(interesting)
    assert all(f.public for f in findings if f.interesting)


def test_unavailable_services_are_not_scheduled() -> None:
    """Services the oracle reports missing, or fails on, are skipped."""

    registry = build_registry(make_fetcher("alpha"), make_fetcher("beta"), make_fetcher("gamma"))
    oracle = FakeOracle(available={"alpha", "gamma"}, broken={"gamma"})

    scanner, findings = run_scan(registry, ["us-east-1", "eu-west-1"], oracle=oracle)

    assert scanner.counters.snapshot().total == 2
    assert {f.arn.split(":")[2] for f in findings} == {"alpha"}


def test_kms_style_service_is_opt_in() -> None:
    """Opt-in services run only when include_kms is set."""

    registry = build_registry(make_fetcher("alpha"), make_fetcher("keys", OPT_IN=True))

    scanner, _ = run_scan(registry, ["us-east-1"])
    assert scanner.counters.snapshot().total == 1

    scanner, findings = run_scan(registry, ["us-east-1"], include_kms=True)
    assert scanner.counters.snapshot().total == 2
    assert any(":keys:" in f.arn for f in findings)


class FailingListFetcher(FakeFetcher):
    SERVICE_NAME = "broken"
    REQUIRED_PERMISSIONS = ["broken:ListThings"]

    def list_resources(self, region):
        raise TransientFetchError(self.SERVICE_NAME, "ListThings", region, "AccessDenied")


class PartlyMalformedFetcher(FakeFetcher):
    SERVICE_NAME = "partial"

    def list_resources(self, region):
        return ["good-public", "bad", "flaky", "good-private"]

    def describe(self, resource, region):
        if resource == "bad":
            yield ResourcePolicyRecord(name=resource, arn="arn:bad", region=region, policy_json="{nope")
        elif resource == "flaky":
            raise TransientFetchError(self.SERVICE_NAME, "GetPolicy", region, "Throttling")
        else:
            yield from super().describe(resource, region)


def test_failures_are_isolated() -> None:
    """A failed task or resource is counted and the rest of the scan completes."""

    registry = build_registry(make_fetcher("alpha"), FailingListFetcher, PartlyMalformedFetcher)

    scanner, findings = run_scan(registry, ["us-east-1"])

    snap = scanner.counters.snapshot()
    assert snap.total == 3
    assert snap.complete == 3
    # one failed task plus two skipped resources
    assert snap.error == 3
    arns = {f.arn for f in findings}
    assert len(findings) == 4
    assert "arn:bad" not in arns
    assert any("good-private" in a for a in arns)


def test_failed_task_logs_required_permissions(caplog, monkeypatch) -> None:
    """A failed listing names the permissions the service needs."""

    monkeypatch.setattr(logging.getLogger("gjallar"), "propagate", True)
    registry = build_registry(FailingListFetcher)

    with caplog.at_level("ERROR", logger="gjallar.scanner"):
        run_scan(registry, ["us-east-1"])

    assert "Task broken requires: broken:ListThings" in caplog.text


def test_progress_reporter_is_started_and_stopped() -> None:
    """The reporter built by the factory brackets the scan."""

    events = []

    class Reporter:
        def __init__(self, counters):
            self.counters = counters

        def start(self):
            events.append("start")

        def stop(self):
            events.append(("stop", self.counters.snapshot().complete))

    scanner = ResourceTrustsScanner(
        session=None,
        account_id=ACCOUNT,
        config=ScanConfig(regions=["us-east-1"]),
        oracle=FakeOracle(),
        registry=build_registry(make_fetcher("alpha")),
        reporter_factory=Reporter,
    )
    scanner.run()

    assert events == ["start", ("stop", 1)]


def test_scanner_runs_once() -> None:
    """A finished scanner cannot be reused."""

    scanner, _ = run_scan(build_registry(make_fetcher("alpha")), ["us-east-1"])

    with pytest.raises(RuntimeError):
        scanner.run()


@pytest.mark.parametrize("kwargs", [
    {"regions": []},
    {"regions": ["us-east-1"], "concurrency": 0},
    {"regions": ["us-east-1"], "concurrency": -3},
    {"regions": ["us-east-1"], "output_type": "tall"},
    {"regions": ["us-east-1"], "table_cols": "ARN,Colour"},
])
def test_invalid_config_is_rejected(kwargs) -> None:
    """Bad configuration values raise ConfigurationError."""

    with pytest.raises(ConfigurationError):
        ScanConfig(**kwargs)


def test_config_columns() -> None:
    """Column selection follows table_cols, then output type."""

    assert ScanConfig(regions=["us-east-1"]).columns == ["ARN", "Public", "Interesting", "Resource Policy Summary"]
    assert ScanConfig(regions=["us-east-1"], output_type="wide").columns[0] == "Account"
    assert ScanConfig(regions=["us-east-1"], table_cols="Name, Region").columns == ["Name", "Region"]


def test_public_api_gateway_short_circuits() -> None:
    """A regional or edge API is public without its policy being parsed."""

    fetcher = APIGatewayFetcher(None, ACCOUNT, TTLCache())
    records = list(fetcher.describe({
        "id": "a1b2c3",
        "name": "orders",
        "endpointConfiguration": {"types": ["REGIONAL"]},
        "policy": "this is not json",
    }, "us-east-1"))

    finding = build_finding(records[0], ACCOUNT)
    assert finding.public
    assert finding.interesting
    assert finding.arn == f"arn:aws:execute-api:us-east-1:{ACCOUNT}:a1b2c3/*"
    assert "REGIONAL" in finding.summary


def test_private_api_gateway_policy_is_unescaped() -> None:
    """Private APIs are classified from their unescaped policy."""

    fetcher = APIGatewayFetcher(None, ACCOUNT, TTLCache())
    escaped = PUBLIC_POLICY.replace('"', '\\"')
    records = list(fetcher.describe({
        "id": "p1",
        "name": "internal",
        "endpointConfiguration": {"types": ["PRIVATE"]},
        "policy": escaped,
    }, "us-east-1"))

    finding = build_finding(records[0], ACCOUNT)
    assert finding.public
    assert finding.summary == "Everyone can perform any action"


def test_empty_policy_handling() -> None:
    """Empty policies are dropped unless the service reports them anyway."""

    plain = ResourcePolicyRecord(name="q", arn="arn:q", region="us-east-1")
    endpoint = ResourcePolicyRecord(name="vpce-1", arn="arn:vpce", region="us-east-1", emit_without_policy=True)
    domain = ResourcePolicyRecord(name="d", arn="arn:d", region="us-east-1",
                                  emit_without_policy=True, public_override=True)

    assert build_finding(plain, ACCOUNT) is None
    assert build_finding(endpoint, ACCOUNT).summary == ""
    assert not build_finding(endpoint, ACCOUNT).public
    assert build_finding(domain, ACCOUNT).public


def test_public_override_replaces_policy_verdict() -> None:
    """A domain with fine-grained access control is not public despite a wildcard policy."""

    record = ResourcePolicyRecord(name="d", arn="arn:d", region="us-east-1",
                                  policy_json=PUBLIC_POLICY, public_override=False, emit_without_policy=True)

    finding = build_finding(record, ACCOUNT)
    assert not finding.public
    assert finding.interesting


def test_glue_policy_is_split_per_resource() -> None:
    """Each resource ARN named in a Glue policy gets its own record."""

    policy = json.dumps({"Version": "2012-10-17", "Statement": [
        {"Effect": "Allow", "Principal": {"AWS": "444455556666"}, "Action": "glue:GetTable",
         "Resource": ["arn:aws:glue:us-east-1:111122223333:catalog",
                      "arn:aws:glue:us-east-1:111122223333:database/sales"]},
        {"Effect": "Allow", "Principal": "*", "Action": "glue:GetDatabase",
         "Resource": "arn:aws:glue:us-east-1:111122223333:database/sales"},
    ]})
    fetcher = GlueFetcher(None, ACCOUNT, TTLCache())

    records = list(fetcher.describe({"PolicyInJson": policy}, "us-east-1"))

    by_arn = {r.arn: build_finding(r, ACCOUNT) for r in records}
    assert len(by_arn) == 2
    assert not by_arn["arn:aws:glue:us-east-1:111122223333:catalog"].public
    assert by_arn["arn:aws:glue:us-east-1:111122223333:database/sales"].public
    assert len(by_arn["arn:aws:glue:us-east-1:111122223333:database/sales"].policy) == 2
