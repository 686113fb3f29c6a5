"""
ssbnk — screen capture hosting watcher.

Watches capture directories, publishes screenshots and recordings into the
hosted store, records one metadata file per artifact and serves the
"latest artifact" redirect API.
"""

__version__ = "0.1.0"
