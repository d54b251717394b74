"""
Rapport: real-time facilitation engine for two-person conversations.

Listens to a live transcript, tracks which relational topics have been
covered, and surfaces a reflective question when the moment is right.
"""

__version__ = "0.1.0"
