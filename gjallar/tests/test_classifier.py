"""Tests for trust classification and English summaries."""

from gjallar.policy import (
    classify,
    is_interesting,
    is_public,
    parse_policy,
    summarize_policy,
)

ACCOUNT = "111122223333"

PUBLIC_BUCKET_POLICY = (
    '{"Statement":[{"Effect":"Allow","Principal":"*",'
    '"Action":"s3:GetObject","Resource":"arn:aws:s3:::bucket/*"}]}'
)


def _statement(**overrides):
    statement = {"Effect": "Allow", "Principal": "*", "Action": "s3:GetObject",
                 "Resource": "arn:aws:s3:::bucket/*"}
    statement.update(overrides)
    return {"Statement": [statement]}


def test_public_bucket_policy_end_to_end() -> None:
    """An unconditioned wildcard grant is public, interesting and says Everyone."""

    result = classify(parse_policy(PUBLIC_BUCKET_POLICY), ACCOUNT)

    assert result.public
    assert result.interesting
    assert "everyone" in result.summary.lower()
    assert result.summary == "Everyone can perform s3:GetObject on arn:aws:s3:::bucket/*"


def test_principal_account_condition_is_not_public() -> None:
    """aws:PrincipalAccount scopes a wildcard grant to one account."""

    policy = parse_policy(_statement(Condition={"StringEquals": {"aws:PrincipalAccount": ACCOUNT}}))

    assert classify(policy, ACCOUNT).public is False


def test_source_account_flips_public() -> None:
    """Adding aws:SourceAccount to an otherwise public statement makes it not public."""

    assert is_public(parse_policy(_statement()))
    assert not is_public(parse_policy(_statement(Condition={"StringEquals": {"aws:SourceAccount": ACCOUNT}})))


def test_every_scoping_key_is_recognized() -> None:
    """Each ownership-scoping key suppresses the public flag, whatever its case."""

    for key in ("aws:PrincipalOrgID", "aws:PrincipalOrgPaths", "aws:SourceArn",
                "aws:SourceVpc", "AWS:SOURCEVPCE"):
        policy = parse_policy(_statement(Condition={"StringEquals": {key: "x"}}))
        assert not is_public(policy), key


def test_unrelated_condition_keeps_public() -> None:
    """A condition outside the scoping set does not scope the grant."""

    policy = parse_policy(_statement(Condition={"Bool": {"aws:SecureTransport": "true"}}))

    assert is_public(policy)


def test_deny_does_not_suppress_public_allow() -> None:
    """Statements are evaluated independently."""

    policy = parse_policy({"Statement": [
        {"Effect": "Allow", "Principal": "*", "Action": "sqs:SendMessage"},
        {"Effect": "Deny", "Principal": "*", "Action": "*"},
    ]})

    assert is_public(policy)


def test_wildcard_account_arn_is_public() -> None:
    """An IAM ARN with a wildcarded account counts as everyone."""

    policy = parse_policy(_statement(Principal={"AWS": "arn:aws:iam::*:root"}))

    assert is_public(policy)


def test_deny_only_policy_is_not_public() -> None:
    """A wildcard Deny grants nothing."""

    policy = parse_policy(_statement(Effect="Deny"))

    result = classify(policy, ACCOUNT)
    assert not result.public
    assert result.summary.startswith("Everyone is denied")
    assert not result.interesting


def test_classification_is_deterministic() -> None:
    """Classifying the same policy twice gives identical results."""

    policy = parse_policy({"Statement": [
        {"Effect": "Allow", "Principal": {"AWS": "444455556666"}, "Action": ["kms:Decrypt", "kms:Encrypt"]},
        {"Effect": "Allow", "Principal": {"Service": "logs.amazonaws.com"}, "Action": "kms:*"},
    ]})

    assert classify(policy, ACCOUNT) == classify(policy, ACCOUNT)


def test_multi_statement_summary_is_numbered() -> None:
    """Each line of a multi-statement summary names its statement index."""

    policy = parse_policy({"Statement": [
        {"Effect": "Allow", "Principal": "*", "Action": "sqs:SendMessage"},
        {"Effect": "Allow", "Principal": {"Service": "sns.amazonaws.com"}, "Action": "sqs:SendMessage",
         "Condition": {"ArnEquals": {"aws:SourceArn": "arn:aws:sns:us-east-1:111122223333:t"}}},
    ]})

    lines = summarize_policy(policy, ACCOUNT).split("\n")
    assert len(lines) == 2
    assert lines[0] == "Statement 0 says: Everyone can perform sqs:SendMessage"
    assert lines[1].startswith("Statement 1 says: the sns.amazonaws.com service can perform sqs:SendMessage")
    assert lines[1].endswith("when aws:SourceArn ArnEquals arn:aws:sns:us-east-1:111122223333:t")


def test_own_account_is_named() -> None:
    """Principals equal to the caller's account are phrased as your own account."""

    policy = parse_policy(_statement(Principal={"AWS": f"arn:aws:iam::{ACCOUNT}:root"}))

    result = classify(policy, ACCOUNT)
    assert result.summary.startswith(f"principals in your own account ({ACCOUNT})")
    assert not result.interesting


def test_external_account_is_interesting() -> None:
    """A bare external account ID renders as its root ARN and is interesting."""

    policy = parse_policy(_statement(Principal={"AWS": "444455556666"}))

    result = classify(policy, ACCOUNT)
    assert result.summary.startswith("arn:aws:iam::444455556666:root can perform")
    assert result.interesting
    assert not result.public


def test_not_principal_and_not_action_phrasing() -> None:
    """NotPrincipal and NotAction render as exceptions."""

    policy = parse_policy({"Statement": [{
        "Effect": "Deny",
        "NotPrincipal": {"AWS": "arn:aws:iam::444455556666:role/admin"},
        "NotAction": "s3:GetObject",
        "Resource": "*",
    }]})

    assert summarize_policy(policy, ACCOUNT) == (
        "Everyone except arn:aws:iam::444455556666:role/admin is denied "
        "any action except s3:GetObject on all resources"
    )


def test_allow_with_not_principal_is_not_public() -> None:
    """Only a wildcard in Principal makes a statement public; NotPrincipal does not."""

    policy = parse_policy({"Statement": [{
        "Effect": "Allow",
        "NotPrincipal": {"AWS": "arn:aws:iam::444455556666:role/admin"},
        "Action": "s3:GetObject",
        "Resource": "arn:aws:s3:::bucket/*",
    }]})

    assert not is_public(policy)
    assert classify(policy, ACCOUNT).summary.startswith("Everyone except arn:aws:iam::444455556666:role/admin can perform")


def test_is_interesting_keywords() -> None:
    """The lexical filter matches its keywords case-insensitively."""

    assert is_interesting("Everyone can perform sns:Publish")
    assert not is_interesting("Everyone is denied any action")
    assert is_interesting("Statement 0 says: Everyone is denied any action\nStatement 1 says: Everyone can perform *")
    assert is_interesting("x when aws:PrincipalOrgID StringEquals o-123")
    assert is_interesting("arn:aws:iam::444455556666:role/deploy can perform sqs:*")
    assert not is_interesting("the logs.amazonaws.com service can perform kms:Decrypt")
    assert not is_interesting("")
    assert not is_interesting(None)


def test_is_interesting_aws_arn_qualifiers() -> None:
    """aws:arn only counts when not pinned by both SourceArn and SourceAccount."""

    assert is_interesting("access when aws:arn ArnLike x")
    assert not is_interesting("access when aws:arn ArnLike x and aws:SourceArn y and aws:SourceAccount z")
