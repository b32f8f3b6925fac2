"""Service deployment: HTTP API and resilience helpers."""
