"""docker-load archive helpers."""
