"""Session identity and provider access."""
