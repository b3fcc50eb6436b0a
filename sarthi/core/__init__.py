"""Core configuration, caching, resilience and model backend for Sarthi."""
