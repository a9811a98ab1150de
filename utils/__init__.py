"""Shared utilities: configuration, logging, database access, messaging and schemas."""
