"""Configuration, security primitives, errors and rate limiting."""
