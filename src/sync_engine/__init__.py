"""Dependency-ordered synchronization of provider objects into a database."""
