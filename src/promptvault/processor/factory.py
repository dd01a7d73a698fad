"""
Builds a vault store and processor from configuration.
"""

import logging

from ..config.config_loader import VaultConfig
from ..core.consumer import TracesConsumer
from ..core.exceptions import VaultConfigError
from ..storage.encryption import PayloadCipher
from ..storage.factory import create_backend
from ..vault_store import VaultStore
from .vault_processor import VaultProcessor


logger = logging.getLogger(__name__)


def create_store(config: VaultConfig) -> VaultStore:
    """
    Build the vault store described by a configuration.
    
    Raises:
        VaultConfigError: If the backend is unknown or the encryption key
            disappeared after the configuration was validated
        BackendWriteError: If the backend cannot initialize its storage
    """
    backend = create_backend(config.get_storage_config())

    cipher = None
    if config.get_crypto_config().get("enable"):
        key = config.get_encryption_key()
        if not key:
            raise VaultConfigError("crypto.enable is set but no encryption key was found")
        cipher = PayloadCipher(key)
        logger.info("Vault payload encryption enabled")

    return VaultStore(backend, cipher=cipher)


def create_processor(config: VaultConfig, next_consumer: TracesConsumer) -> VaultProcessor:
    """Build a VaultProcessor that forwards to next_consumer."""
    processor_config = config.get_processor_config()
    return VaultProcessor(
        policy=config.get_policy(),
        store=create_store(config),
        next_consumer=next_consumer,
        max_workers=processor_config.get("max_workers", 1),
    )
