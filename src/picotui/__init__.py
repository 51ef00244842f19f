"""picotui - terminal dashboard for Picodata clusters."""

__version__ = "0.3.0"
