"""
Worker module.
Contains the dispatcher and the job handler registry.
"""

from listqueue.worker.main import Dispatcher, DispatchOutcome, run

__all__ = ["Dispatcher", "DispatchOutcome", "run"]
