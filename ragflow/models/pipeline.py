"""Pipeline phase enums for the ingestion and research state machines.

The orchestrator advances each instance through its phases in order and
reports the current phase through the
:class:`~ragflow.pipeline.progress_tracker.ProgressTracker`.  ``FAILED`` is
reachable from every phase and is terminal for that run; the workflow
engine may still resume the instance from its last memoized step.
"""

from __future__ import annotations

from enum import Enum


class IngestionPhase(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Phases of the ingestion pipeline.

        INIT → CHUNKED → EMBEDDED → PERSISTED → DONE
    """

    INIT = "INIT"            # Document id/timestamp generated
    CHUNKED = "CHUNKED"      # Chunker output memoized
    EMBEDDED = "EMBEDDED"    # Every batch group embedded
    PERSISTED = "PERSISTED"  # Rows and vectors written for every group
    DONE = "DONE"
    FAILED = "FAILED"


class ResearchPhase(str, Enum):  # noqa: UP042
    """Phases of the research pipeline.

        INIT → PLANNED → GATHERED → RANKED → SYNTHESIZED → DONE
    """

    INIT = "INIT"
    PLANNED = "PLANNED"          # Sub-queries chosen (or fallback plan)
    GATHERED = "GATHERED"        # Parallel vector queries unioned
    RANKED = "RANKED"            # Deduplicated, hydrated, sorted
    SYNTHESIZED = "SYNTHESIZED"  # Answer generated (or no-info sentinel)
    DONE = "DONE"
    FAILED = "FAILED"
