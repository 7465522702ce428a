"""Satellite Progress Monitoring Pipeline.

Azure Functions workflow that periodically captures satellite imagery of
each development project's coordinates, classifies whether visible change
has occurred since the previous capture, and appends the result to the
project's snapshot history.
"""

__version__ = "0.1.0"
