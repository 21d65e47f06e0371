"""Shared helpers used across shopsync packages."""
