"""Deduplication and re-ranking of vector matches.

Parallel sub-query searches return their matches in no particular order
and frequently hit the same chunk more than once.  The functions here are
pure: for the same multiset of ``(chunk_id, score)`` pairs they always
return the same list, whatever order the pairs arrived in.

Policy: when a chunk id repeats, the highest score wins.  Results are
ordered by descending score, ties broken by ascending chunk id.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from ragflow.models.rag import SearchResult


def _rank_key(pair: tuple[str, float]) -> tuple[float, str]:
    chunk_id, score = pair
    return (-score, chunk_id)


def dedupe_and_rank(pairs: Iterable[tuple[str, float]]) -> list[tuple[str, float]]:
    """Collapse repeated chunk ids and order by score.

    Parameters
    ----------
    pairs:
        ``(chunk_id, score)`` pairs, possibly containing repeats.

    Returns
    -------
    list[tuple[str, float]]
        One entry per distinct chunk id carrying its best score, sorted by
        descending score then ascending chunk id.
    """
    best: dict[str, float] = {}
    for chunk_id, score in pairs:
        current = best.get(chunk_id)
        if current is None or score > current:
            best[chunk_id] = score
    return sorted(best.items(), key=_rank_key)


def attach_scores(
    ranked: list[tuple[str, float]],
    rows: Iterable[Mapping[str, Any]],
) -> list[SearchResult]:
    """Join hydrated chunk rows with their ranking scores.

    ``rows`` come back from the store in arbitrary order and may be missing
    ids whose chunk row does not exist; those ids are dropped.  The output
    keeps the order of *ranked*.
    """
    rows_by_id = {row["id"]: row for row in rows}
    results: list[SearchResult] = []
    for chunk_id, score in ranked:
        row = rows_by_id.get(chunk_id)
        if row is None:
            continue
        results.append(
            SearchResult(
                id=chunk_id,
                document_id=row["document_id"],
                content=row["content"],
                score=score,
                source_url=row.get("source_url"),
            )
        )
    return results


def unique_sources(results: Iterable[SearchResult]) -> list[str]:
    """Return the non-null source URLs of *results*, first occurrence order."""
    seen: set[str] = set()
    sources: list[str] = []
    for result in results:
        if result.source_url and result.source_url not in seen:
            seen.add(result.source_url)
            sources.append(result.source_url)
    return sources
