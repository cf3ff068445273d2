"""Defines common Value Objects used across different domain contexts.

These objects represent simple values or concepts like endpoint URLs, file
paths, collection paths etc., ensuring consistency and type safety.
"""

from typing import NewType, Any, Dict

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
FilePath = NewType("FilePath", str)              # Path to a local photo or output file
EndpointUrl = NewType("EndpointUrl", str)        # Absolute http(s) URL of a remote endpoint
HttpMethod = NewType("HttpMethod", str)          # 'GET', 'POST', ...
MimeType = NewType("MimeType", str)              # e.g. 'image/png'

# === Document Store Context ===
CollectionPath = NewType("CollectionPath", str)  # e.g. 'artifacts/<app>/public/data/leads'
DocumentId = NewType("DocumentId", str)
DocumentData = NewType("DocumentData", Dict[str, Any])

# === Identity Context ===
UserId = NewType("UserId", str)


def leads_collection(app_id: str) -> CollectionPath:
    """Returns the collection path under which leads are stored for an app."""
    return CollectionPath(f"artifacts/{app_id}/public/data/leads")
