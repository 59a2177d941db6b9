"""Application layer: configuration, interfaces, use cases and services."""
