"""Core infrastructure: configuration, errors, logging and project layout."""
