"""Facilitation engine core: data model, transcript reconciliation, scheduling."""
