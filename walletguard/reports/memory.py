"""In-memory community fraud report store implementation."""

import asyncio
from datetime import datetime

from walletguard.constants import ReportCategory
from walletguard.core.exceptions import AlreadyReported
from walletguard.core.reports import FraudReportStore
from walletguard.models.reports import CommunityReport, ReportNote


class MemoryReportStore(FraudReportStore):
    """In-memory report store. For development/testing only."""

    def __init__(self) -> None:
        self._reports: dict[str, CommunityReport] = {}
        self._lock = asyncio.Lock()

    async def get_report(self, address: str) -> CommunityReport | None:
        async with self._lock:
            report = self._reports.get(address)
            return report.model_copy(deep=True) if report else None

    async def record_report(
        self,
        address: str,
        reporter: str,
        category: ReportCategory,
        note: ReportNote | None,
        reported_at: datetime,
    ) -> CommunityReport:
        async with self._lock:
            report = self._reports.get(address)
            if report is None:
                report = CommunityReport(address=address, created_at=reported_at)
                self._reports[address] = report
            elif reporter in report.reporters:
                raise AlreadyReported(address, reporter)

            report.reporters.append(reporter)
            report.frequency = len(report.reporters)
            if category not in report.categories:
                report.categories.append(category)
            if note is not None:
                report.notes.append(note)
            report.updated_at = reported_at
            return report.model_copy(deep=True)

    async def top_reports(self, limit: int) -> list[CommunityReport]:
        async with self._lock:
            ranked = sorted(self._reports.values(), key=lambda r: r.frequency, reverse=True)
            return [report.model_copy(deep=True) for report in ranked[:limit]]

    async def close(self) -> None:
        """Clear the in-memory store."""
        async with self._lock:
            self._reports.clear()

    async def ping(self) -> bool:
        """Memory store is always available."""
        return True
