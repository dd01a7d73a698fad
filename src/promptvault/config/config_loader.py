"""
Configuration loader for the prompt vault.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..core.exceptions import VaultConfigError
from ..core.models import VaultMode, VaultPolicy
from ..storage.encryption import get_encryption_key


logger = logging.getLogger(__name__)


DEFAULT_VAULT_KEYS = [
    "gen_ai.prompt",
    "gen_ai.completion",
    "gen_ai.system_instructions",
    "gen_ai.input.messages",
    "gen_ai.output.messages",
]

SUPPORTED_BACKENDS = ("filesystem", "filesystem_hashed")

DEFAULT_KEY_ENV_VAR = "PROMPTVAULT_ENCRYPTION_KEY"


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class VaultConfig:
    """
    Configuration for the vault processor.

    Loads a YAML configuration file on top of the defaults, then applies
    environment variable overrides. Validation runs eagerly so a bad
    configuration fails at startup rather than on the first batch.
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        overrides: Optional[Dict[str, Any]] = None,
        apply_env: bool = True,
    ):
        """
        Initialize configuration.

        Args:
            config_path: Path to YAML config file (optional)
            overrides: Values merged over the file/defaults (optional)
            apply_env: Whether to apply PROMPTVAULT_* environment overrides
        """
        self.config_path = Path(config_path) if config_path else None
        loaded = self._load_config() if self.config_path else {}
        self.config = _deep_merge(self._default_config(), loaded)
        if overrides:
            self.config = _deep_merge(self.config, overrides)
        if apply_env:
            self._apply_env_overrides()
        self.validate()

    @classmethod
    def from_dict(cls, data: Dict[str, Any], apply_env: bool = False) -> "VaultConfig":
        """Build a configuration from an in-memory dict."""
        return cls(overrides=data, apply_env=apply_env)

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        logger.info(f"Loading config from: {self.config_path}")

        with open(self.config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)

        if config is not None and not isinstance(config, dict):
            raise VaultConfigError(f"Config file must contain a mapping: {self.config_path}")
        return config or {}

    def _default_config(self) -> Dict[str, Any]:
        """Return default configuration."""
        return {
            "storage": {
                "backend": "filesystem",
                "filesystem": {
                    "base_path": "/data/vault",
                },
            },
            "vault": {
                "keys": list(DEFAULT_VAULT_KEYS),
                # 0 = vault everything
                "size_threshold": 0,
                "mode": VaultMode.REPLACE_WITH_REF.value,
            },
            "crypto": {
                "enable": False,
                "key_env_var": DEFAULT_KEY_ENV_VAR,
                "key_file": None,
            },
            "processor": {
                # 1 = sequential per batch
                "max_workers": 1,
            },
        }

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides to loaded config."""
        storage = self.config.setdefault("storage", {})
        vault = self.config.setdefault("vault", {})

        base_path = os.environ.get("PROMPTVAULT_BASE_PATH")
        if base_path:
            storage.setdefault("filesystem", {})["base_path"] = base_path

        backend = os.environ.get("PROMPTVAULT_BACKEND")
        if backend:
            storage["backend"] = backend

        mode = os.environ.get("PROMPTVAULT_MODE")
        if mode:
            vault["mode"] = mode

        threshold = os.environ.get("PROMPTVAULT_SIZE_THRESHOLD")
        if threshold:
            try:
                vault["size_threshold"] = int(threshold)
            except ValueError:
                raise VaultConfigError(
                    f"PROMPTVAULT_SIZE_THRESHOLD must be an integer, got '{threshold}'"
                )

    def validate(self) -> None:
        """
        Validate the effective configuration.

        Raises:
            VaultConfigError: On the first invalid value found
        """
        backend = str(self.get("storage.backend", "")).strip().lower()
        if backend not in SUPPORTED_BACKENDS:
            raise VaultConfigError(
                f"Unknown storage backend '{backend}' "
                f"(expected one of: {', '.join(SUPPORTED_BACKENDS)})"
            )

        keys = self.get("vault.keys", [])
        if not isinstance(keys, list) or not all(isinstance(k, str) for k in keys):
            raise VaultConfigError("vault.keys must be a list of attribute names")

        threshold = self.get("vault.size_threshold", 0)
        if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold < 0:
            raise VaultConfigError(
                f"vault.size_threshold must be a non-negative integer, got {threshold!r}"
            )

        VaultMode.parse(self.get("vault.mode", VaultMode.REPLACE_WITH_REF.value))

        workers = self.get("processor.max_workers", 1)
        if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
            raise VaultConfigError(
                f"processor.max_workers must be a positive integer, got {workers!r}"
            )

        if self.get("crypto.enable", False) and not self.get_encryption_key():
            raise VaultConfigError(
                "crypto.enable is set but no encryption key was found "
                f"(set {self.get('crypto.key_env_var', DEFAULT_KEY_ENV_VAR)} or crypto.key_file)"
            )

    def get_storage_config(self) -> Dict[str, Any]:
        """Get storage configuration."""
        return self.config.get("storage", {})

    def get_vault_config(self) -> Dict[str, Any]:
        """Get vault (offload policy) configuration."""
        return self.config.get("vault", {})

    def get_crypto_config(self) -> Dict[str, Any]:
        """Get encryption configuration."""
        return self.config.get("crypto", {})

    def get_processor_config(self) -> Dict[str, Any]:
        """Get processor configuration."""
        return self.config.get("processor", {})

    def get_encryption_key(self) -> Optional[bytes]:
        """Resolve the configured encryption key, or None when none is set."""
        crypto = self.get_crypto_config()
        return get_encryption_key(
            key_env_var=crypto.get("key_env_var") or DEFAULT_KEY_ENV_VAR,
            key_file_path=crypto.get("key_file"),
        )

    def get_keys(self) -> List[str]:
        return list(self.get("vault.keys", []))

    def get_policy(self) -> VaultPolicy:
        """Build the immutable offload policy."""
        vault = self.get_vault_config()
        return VaultPolicy.create(
            keys=vault.get("keys", []),
            size_threshold=vault.get("size_threshold", 0),
            mode=vault.get("mode", VaultMode.REPLACE_WITH_REF.value),
        )

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dotted key."""
        keys = key.split(".")
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default

    def to_yaml(self) -> str:
        """Render the effective configuration as YAML."""
        return yaml.safe_dump(self.config, sort_keys=False, default_flow_style=False)
