"""Shared configuration and API schemas."""
