"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (HTTP, AI endpoint, document
store, file system, console) by implementing the interfaces defined in the
domain layer.
"""
