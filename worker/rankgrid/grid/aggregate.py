"""Summary statistics over a scan's cells."""

from __future__ import annotations

from typing import List

from rankgrid.core.models import RankStatistics, ScanResult


def aggregate(scan_result: ScanResult) -> RankStatistics:
    """Average, best and worst rank over ranked cells, plus unranked counts.

    With no ranked cells the rank fields are ``None``; callers render that as
    "no data" rather than a number.
    """
    ranks: List[int] = [cell.rank for cell in scan_result.cells if cell.rank is not None]
    failed = sum(1 for cell in scan_result.cells if cell.failed)
    unranked = len(scan_result.cells) - len(ranks)

    if not ranks:
        return RankStatistics(
            average_rank=None,
            best_rank=None,
            worst_rank=None,
            ranked_count=0,
            unranked_count=unranked,
            failed_count=failed,
        )

    return RankStatistics(
        average_rank=sum(ranks) / len(ranks),
        best_rank=min(ranks),
        worst_rank=max(ranks),
        ranked_count=len(ranks),
        unranked_count=unranked,
        failed_count=failed,
    )
