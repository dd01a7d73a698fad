"""
Downstream consumer interface for processed trace batches.
"""

from abc import ABC, abstractmethod

from .traces import Traces


class TracesConsumer(ABC):
    """
    Next stage of the host pipeline.
    
    The vault processor forwards every batch to a consumer after rewriting
    it. Any exception raised here propagates out of the processor.
    """

    @abstractmethod
    def consume_traces(self, traces: Traces) -> None:
        """Accept a batch of traces."""
        pass
