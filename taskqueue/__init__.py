"""
Distributed FizzBuzz Task Queue

A minimal task queue where independent workers claim typed tasks from a shared
PostgreSQL table using FOR UPDATE SKIP LOCKED, with no central coordinator.
"""

__version__ = "0.1.0"
