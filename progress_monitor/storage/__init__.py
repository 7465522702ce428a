"""Storage collaborators: the project store and snapshot object storage."""
