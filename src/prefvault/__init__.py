"""
prefvault - settings backup and restore for world-readable preference stores

Snapshots an application's preference files and resource files to an
external backup location and restores them on demand.

Key Features:
    - Single backup slot whose validity is tracked by an on-disk flag file
    - A half-written backup is never reported as valid
    - Restores preference files written by older release lines
    - Fans out preference directory change events to multiple listeners
    - Normalizes permissions across the private storage tree
"""

__version__ = "0.1.0"

from prefvault.config.settings import Settings, load_config

__all__ = [
    "__version__",
    "Settings",
    "load_config",
]
