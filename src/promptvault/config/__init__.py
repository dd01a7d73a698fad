"""
Configuration loading for the prompt vault.
"""

from .config_loader import VaultConfig, DEFAULT_VAULT_KEYS

__all__ = ["VaultConfig", "DEFAULT_VAULT_KEYS"]
