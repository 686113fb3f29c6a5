"""
Publishing error hierarchy.

Publish failures abandon the one capture being published. The watcher
keeps running and other in-flight captures are unaffected.
"""


class PublishError(Exception):
    """Base exception for publish failures."""

    pass


class NameAllocationError(PublishError):
    """No free destination name could be claimed in the hosted store."""

    pass


class TransferError(PublishError):
    """Source content could not be moved or copied into the hosted store."""

    pass
