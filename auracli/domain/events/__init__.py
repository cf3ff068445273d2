"""Domain Event definitions.

Represents significant occurrences within a request lifecycle that other parts
of the system might react to (logging, progress display, tests).
"""
