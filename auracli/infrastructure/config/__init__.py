"""Configuration loading and system bootstrap."""
