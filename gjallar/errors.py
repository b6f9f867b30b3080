# ᚾᚨᚢᚦᛁᛉ • Nauthiz - The Rune of Need (Error Taxonomy)
"""
Exceptions raised by gjallar.

Only ConfigurationError is fatal. Everything else is recovered at the
task or resource level by the scanner and counted.
"""


class GjallarError(Exception):
    """Base exception for gjallar."""


class ConfigurationError(GjallarError):
    """Bad profile, missing credentials, invalid scan settings or failed identity lookup."""


class TransientFetchError(GjallarError):
    """A remote AWS call failed."""

    def __init__(self, service: str, operation: str, region: str = "", message: str = ""):
        self.service = service
        self.operation = operation
        self.region = region
        where = f"{service}:{operation}" + (f" ({region})" if region else "")
        super().__init__(f"{where}: {message}" if message else where)


class MalformedPolicyError(GjallarError):
    """A policy document is not valid JSON or does not match the policy schema."""
