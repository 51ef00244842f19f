"""Core local services: configuration and token persistence."""
