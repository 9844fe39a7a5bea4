"""Test administration HTTP API."""
