"""System bootstrap: turns Settings into a ready-to-use SystemContext.

Called once by the entry point. The store configuration is a JSON document
(``AURA_STORE_CONFIG``), e.g. ``{"backend": "memory"}`` or
``{"backend": "file", "path": "~/.auracli/leads.json"}``.
"""

import enum
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from auracli.domain.interfaces.document_store import DocumentStore
from auracli.infrastructure.config.settings import Settings
from auracli.infrastructure.store.local_store import InMemoryDocumentStore, JsonFileDocumentStore

logger = logging.getLogger(__name__)


class SystemStatus(str, enum.Enum):
    READY = "ready"
    MISSING_CONFIG = "missing_config"
    CONFIG_ERROR = "config_error"


@dataclass
class SystemContext:
    """Outcome of the bootstrap. ``store`` is set only when READY."""
    settings: Settings
    status: SystemStatus
    store: Optional[DocumentStore] = None
    error: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.status is SystemStatus.READY


def bootstrap(settings: Settings) -> SystemContext:
    """Parses the store config and builds the document store.

    Never raises for configuration problems: they are reported through the
    returned status so the CLI can explain them.
    """
    raw = (settings.store_config or "").strip()
    if not raw or raw == "{}":
        logger.warning("Store configuration is missing.")
        return SystemContext(settings=settings, status=SystemStatus.MISSING_CONFIG,
                             error="AURA_STORE_CONFIG is not set.")

    try:
        config = json.loads(raw)
        if not isinstance(config, dict):
            raise ValueError("store configuration must be a JSON object")
        store = _build_store(config)
    except ValueError as e:
        logger.error(f"Initialization Fault: {e}")
        return SystemContext(settings=settings, status=SystemStatus.CONFIG_ERROR,
                             error=f"Store configuration is invalid: {e}")

    logger.info(f"System ready with {type(store).__name__}")
    return SystemContext(settings=settings, status=SystemStatus.READY, store=store)


def _build_store(config: dict) -> DocumentStore:
    backend = str(config.get("backend", "memory")).lower()
    if backend == "memory":
        return InMemoryDocumentStore()
    if backend == "file":
        path = config.get("path")
        if not path:
            raise ValueError("file backend requires a 'path'")
        return JsonFileDocumentStore(Path(str(path)).expanduser())
    raise ValueError(f"unknown store backend '{backend}'")
