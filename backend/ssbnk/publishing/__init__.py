"""
Publishing — moving captures into the hosted store.

Public API:
    NameAllocator — Serialized, collision-free destination naming
    Publisher — Store write + metadata record + clipboard propagation
    PublishResult — Outcome of one publish
"""

from .errors import PublishError, NameAllocationError, TransferError
from .naming import NameAllocator, timestamp_stem, candidate_names
from .publisher import Publisher, PublishResult

__all__ = [
    # Errors
    "PublishError",
    "NameAllocationError",
    "TransferError",
    # Naming
    "NameAllocator",
    "timestamp_stem",
    "candidate_names",
    # Publisher
    "Publisher",
    "PublishResult",
]
