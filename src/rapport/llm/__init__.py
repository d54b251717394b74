"""Reasoning-service layer: client, prompts and the components built on them."""
