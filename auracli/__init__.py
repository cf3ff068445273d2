"""auracli: command-line client for the Aura biometric diagnostics demo."""

__version__ = "0.1.0"
