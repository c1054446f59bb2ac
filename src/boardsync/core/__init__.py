"""Core sync engine, connectors, configuration and local task store."""
