"""Shared utilities: errors, logging, constants and serialization."""
