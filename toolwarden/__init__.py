"""Toolwarden — lifecycle orchestrator for packaged AI coding CLIs."""

__version__ = "0.1.0"
