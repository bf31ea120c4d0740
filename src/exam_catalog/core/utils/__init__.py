"""Serialization helpers for the stored collections."""
