"""
Prompt Vault - offloads large or sensitive telemetry attribute values
into a content-addressed vault and leaves a verifiable reference behind.
"""

__version__ = "0.1.0"
