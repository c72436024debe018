"""Configuration, domain models, errors and services."""
