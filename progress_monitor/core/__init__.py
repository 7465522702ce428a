"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Named constants shared across providers and the job
- exceptions: Custom exception hierarchy
- ingress: HTTP body parsing and collaborator client factories
- run_lock: Single-flight guard for monitoring runs
"""
