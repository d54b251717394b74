"""FastAPI service surface for Rapport sessions."""
