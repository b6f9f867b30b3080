# ᚷᛃᚨᛚᛚᚨᚱ • Gjallar - The Horn That Warns the Realms
"""
Gjallar - AWS resource policy trust scanner.

Sweeps every enabled region for resources carrying a resource-based policy,
classifies each policy for public exposure and cross-account trust, and
renders it as plain English.
"""

__version__ = "0.4.0"
