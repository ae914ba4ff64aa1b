"""Core domain: entities, errors, events and ports."""
