"""Application packages: one sub-package per runnable service."""
