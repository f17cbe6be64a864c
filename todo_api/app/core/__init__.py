"""Core infrastructure: configuration, logging, storage, security, lifecycle."""
