"""Application services (one per use case area)."""
