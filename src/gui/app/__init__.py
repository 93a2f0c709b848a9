"""Application layer: bootstrap and in-memory settings store.

``create_app`` / ``AppContext`` live in ``gui.app.bootstrap``; import them from
there (the bootstrap pulls in every service, which in turn depend on the
store exported here).
"""

from .config_store import ConfigStore, normalize_settings  # noqa: F401

__all__ = [
    "ConfigStore",
    "normalize_settings",
]
