"""
List Queue

A self-coordinating job queue built on a shared list store. Workers hand jobs
between a pending list and an in-flight list under advisory locks, with a
staleness sweep providing at-least-once delivery and bounded retries.
"""

__version__ = "1.0.0"
