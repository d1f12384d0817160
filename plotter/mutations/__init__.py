"""Scoped edits and deletes of entry series."""
