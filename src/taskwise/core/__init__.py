"""Ports, errors, rate limiting and AppState."""
