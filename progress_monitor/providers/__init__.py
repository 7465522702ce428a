"""Imagery provider adapters and the provider factory."""
