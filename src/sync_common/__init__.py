"""Shared helpers for the objectsync packages."""
