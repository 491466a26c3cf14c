"""
Worker module.
Contains the claim workers and the task handlers they execute.
"""

from taskqueue.worker.main import ClaimWorker, WorkerSupervisor, run

__all__ = ["ClaimWorker", "WorkerSupervisor", "run"]
