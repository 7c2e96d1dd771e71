"""Shared utilities for embedded Cassandra."""
