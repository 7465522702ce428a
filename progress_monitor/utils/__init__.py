"""Helper modules: geographic math, blob paths, provider configuration."""
