"""Monitoring run orchestration and the trigger entry points that share it."""
