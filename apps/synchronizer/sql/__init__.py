"""Bundled SQL object scripts, one folder per object kind."""
