"""
Sweeper module.
Contains the retry sweeper for reclaiming stale in-flight jobs.
"""

from listqueue.sweeper.main import Sweeper, SweepOutcome, run

__all__ = ["Sweeper", "SweepOutcome", "run"]
