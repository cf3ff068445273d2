"""Clients for the remote inference endpoint."""
