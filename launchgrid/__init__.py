"""LaunchGrid: application launcher grid with viewport-gated icon loading."""

__version__ = "0.3.0"
