"""Durable workflow stores.

    - SQLiteWorkflowStore — instances and step results survive restarts
    - MemoryWorkflowStore — TTL cache, process-local
"""

from ragflow.providers.workflow.memory_workflow_store import MemoryWorkflowStore
from ragflow.providers.workflow.sqlite_workflow_store import SQLiteWorkflowStore

__all__ = ["MemoryWorkflowStore", "SQLiteWorkflowStore"]
