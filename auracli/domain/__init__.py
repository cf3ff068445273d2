"""Domain Layer: value objects, events, errors and ports.

Nothing in here talks to the network, the disk or the console.
"""
