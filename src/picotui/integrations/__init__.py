"""External service integrations for picotui."""
