"""Test helpers for the embedded-cassandra test suite."""
