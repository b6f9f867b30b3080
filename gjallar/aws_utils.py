# ᚺᛁᛗᛁᚾᛒᛃᛟᚱᚷ • Himinbjörg - AWS Session and Run State
"""
AWS utility functions for gjallar: profiles, sessions, caller identity,
enabled regions, service availability and the persisted run-state file.
"""

import configparser
import json
import logging
import os
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError, ProfileNotFound

from gjallar.cache import TTLCache
from gjallar.errors import ConfigurationError
from gjallar.services.registry import default_client_config

logger = logging.getLogger(__name__)

RUN_DATA_PREFIX = "GjallarRunData"
BANNED_PATH_CHARS = re.compile(r"""[<>:"'|?*]""")


def get_aws_profiles(aws_dir: Optional[Path] = None) -> List[Dict[str, str]]:
    """
    Get list of available AWS profiles from ~/.aws/credentials and ~/.aws/config

    Returns:
        List of dicts with profile info: [{'name': 'default', 'region': 'us-east-1'}, ...]
    """
    aws_dir = aws_dir or Path.home() / '.aws'
    profiles: Dict[str, Dict[str, Any]] = {}

    credentials_path = aws_dir / 'credentials'
    if credentials_path.exists():
        parser = configparser.ConfigParser()
        parser.read(credentials_path)
        for section in parser.sections():
            profiles[section] = {'name': section, 'region': None}

    config_path = aws_dir / 'config'
    if config_path.exists():
        parser = configparser.ConfigParser()
        parser.read(config_path)
        for section in parser.sections():
            # "profile prod" in config, "prod" in credentials
            name = section[len('profile '):] if section.startswith('profile ') else section
            entry = profiles.setdefault(name, {'name': name, 'region': None})
            if parser.has_option(section, 'region'):
                entry['region'] = parser.get(section, 'region')

    return list(profiles.values())


class CredentialsCache:
    """
    Profile name -> boto3 Session, built at most once per profile.

    Owned by the caller and passed to whatever needs a session; nothing is
    kept at module level.
    """

    def __init__(self, session_factory: Callable[..., Any] = boto3.Session):
        self._session_factory = session_factory
        self._sessions: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def get_or_load(self, profile: Optional[str]) -> Any:
        """
        Return the session for ``profile`` (None means the default chain).

        Raises:
            ConfigurationError: Unknown profile or no usable credentials
        """
        key = profile or ""
        with self._lock:
            session = self._sessions.get(key)
            if session is not None:
                return session
            try:
                session = self._session_factory(profile_name=profile) if profile else self._session_factory()
            except ProfileNotFound as e:
                raise ConfigurationError(f"AWS profile not found: {profile}") from e
            except BotoCoreError as e:
                raise ConfigurationError(f"Could not load AWS configuration for {profile or 'default'}: {e}") from e
            try:
                credentials = session.get_credentials()
            except BotoCoreError as e:
                raise ConfigurationError(f"Could not load AWS credentials for {profile or 'default'}: {e}") from e
            if credentials is None:
                raise ConfigurationError(f"No AWS credentials found for profile {profile or 'default'}")
            self._sessions[key] = session
            logger.debug("Loaded AWS session for profile %s", profile or "default")
            return session


@dataclass(frozen=True)
class CallerIdentity:
    account: str
    user_id: str
    arn: str


def resolve_identity(session: Any) -> CallerIdentity:
    """
    sts:GetCallerIdentity for a session.

    Raises:
        ConfigurationError: The call fails (expired or invalid credentials)
    """
    try:
        response = session.client('sts', config=default_client_config()).get_caller_identity()
    except (ClientError, BotoCoreError) as e:
        logger.critical("Failed to get AWS caller identity: %s", e)
        raise ConfigurationError(f"AWS authentication failed: {e}") from e
    return CallerIdentity(
        account=response['Account'],
        user_id=response.get('UserId', ''),
        arn=response.get('Arn', ''),
    )


def remove_bad_path_chars(value: str) -> str:
    return BANNED_PATH_CHARS.sub('_', value or '')


def build_aws_path(identity: CallerIdentity) -> str:
    """``<account>-<userid>`` safe for use as a file or directory name."""
    return f"{remove_bad_path_chars(identity.account)}-{remove_bad_path_chars(identity.user_id)}"


def get_enabled_regions(session: Any, cache: Optional[TTLCache] = None) -> List[str]:
    """
    Regions enabled for the account (ec2:DescribeRegions, AllRegions=False).

    Falls back to botocore's static EC2 region list when the call fails.
    """
    key = f"GetEnabledRegions-{getattr(session, 'profile_name', None) or 'default'}"
    if cache is not None:
        regions, found = cache.get(key)
        if found:
            return regions

    try:
        client = session.client('ec2', region_name=session.region_name or 'us-east-1', config=default_client_config())
        response = client.describe_regions(AllRegions=False)
    except (ClientError, BotoCoreError) as e:
        logger.error("DescribeRegions failed, using the static region list: %s", e)
        return sorted(session.get_available_regions('ec2'))

    regions = sorted(r['RegionName'] for r in response.get('Regions', []))
    if cache is not None:
        cache.set(key, regions)
    return regions


class RegionAvailability:
    """
    Availability oracle backed by botocore's endpoint data.

    ``is_service_available('sqs', 'eu-west-1')`` is True when botocore knows
    an endpoint for the service in that region.
    """

    def __init__(self, session: Any):
        self.session = session
        self._regions: Dict[str, frozenset] = {}
        self._lock = threading.Lock()

    def available_regions(self, service: str) -> frozenset:
        with self._lock:
            regions = self._regions.get(service)
            if regions is None:
                regions = frozenset(self.session.get_available_regions(service))
                self._regions[service] = regions
            return regions

    def is_service_available(self, service: str, region: str) -> bool:
        return region in self.available_regions(service)


@dataclass
class RunData:
    """Identity and output location remembered per profile between runs."""
    profile: str
    account_id: str
    output_location: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'Profile': self.profile,
            'AccountID': self.account_id,
            'OutputLocation': self.output_location,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RunData':
        return cls(
            profile=data['Profile'],
            account_id=data['AccountID'],
            output_location=data['OutputLocation'],
        )


def run_data_path(output_directory: str, profile: str) -> Path:
    return Path(output_directory) / 'cached-data' / 'aws' / f"{RUN_DATA_PREFIX}-{profile}.json"


def load_or_create_run_data(
    profile: str,
    output_directory: str,
    identity_resolver: Callable[[], CallerIdentity],
) -> RunData:
    """
    Read the run-state file for ``profile``, or resolve the caller identity
    and write it once.

    Raises:
        ConfigurationError: The file is unreadable or identity resolution fails
    """
    path = run_data_path(output_directory, profile)
    if path.exists():
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return RunData.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise ConfigurationError(f"Invalid run data file {path}: {e}") from e

    identity = identity_resolver()
    run_data = RunData(
        profile=profile,
        account_id=identity.account,
        output_location=os.path.join(
            output_directory, 'gjallar-output', 'aws', f"{profile}-{identity.account}",
        ),
    )
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(run_data.to_dict(), f)
    except OSError as e:
        raise ConfigurationError(f"Could not write run data file {path}: {e}") from e
    logger.debug("Wrote run data for %s to %s", profile, path)
    return run_data
