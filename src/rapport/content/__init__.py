"""Static question content."""
