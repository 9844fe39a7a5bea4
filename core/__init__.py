"""Test-session engine: sampling, timer, scoring and session control."""
