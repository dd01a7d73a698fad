"""
Attribute offload processor and its pipeline glue.
"""

from .vault_processor import VaultProcessor, ProcessorStats
from .sink import TracesSink
from .factory import create_processor, create_store

__all__ = [
    "VaultProcessor",
    "ProcessorStats",
    "TracesSink",
    "create_processor",
    "create_store",
]
