"""Abstract community fraud report store interface."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime

from walletguard.constants import COMMUNITY_REPORT_LIST_LIMIT, ReportCategory
from walletguard.models.blocklist import utcnow
from walletguard.models.reports import CommunityReport, ReportNote, ReportSubmission

logger = logging.getLogger(__name__)


class FraudReportStore(ABC):
    """
    Abstract base class for community fraud reports.

    Reports are global, keyed by address. Each reporter counts once per
    address; later reports from other users raise the frequency, extend the
    category set and append their notes. ``record_report`` must apply a
    report atomically.
    """

    @abstractmethod
    async def get_report(self, address: str) -> CommunityReport | None:
        """
        Load the aggregate report for an address.

        Returns:
            The report, or None if nobody reported the address.
        """
        ...

    @abstractmethod
    async def record_report(
        self,
        address: str,
        reporter: str,
        category: ReportCategory,
        note: ReportNote | None,
        reported_at: datetime,
    ) -> CommunityReport:
        """
        Apply one user's report.

        Returns:
            The aggregate after the report.

        Raises:
            AlreadyReported: If this reporter already reported the address.
        """
        ...

    @abstractmethod
    async def top_reports(self, limit: int) -> list[CommunityReport]:
        """Most frequently reported addresses first."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the storage connection."""
        ...

    @abstractmethod
    async def ping(self) -> bool:
        """Check if the backend is reachable."""
        ...

    async def submit_report(
        self,
        address: str,
        reporter: str,
        category: ReportCategory,
        note: str = "",
    ) -> ReportSubmission:
        """
        File a report against an address.

        Raises:
            AlreadyReported: If this reporter already reported the address.
        """
        now = utcnow()
        text = note.strip()
        report_note = ReportNote(reporter=reporter, note=text, created_at=now) if text else None
        report = await self.record_report(address, reporter, category, report_note, now)

        logger.info(
            f"[Reports] {address[:8]}... reported as {category.value}; frequency={report.frequency}"
        )
        if report.frequency == 1:
            message = "Report submitted successfully. Thank you for helping keep the network safe."
        else:
            message = (
                "Report updated successfully. This wallet has been reported "
                f"by {report.frequency} users."
            )
        return ReportSubmission(report=report, message=message)

    async def list_reports(self, limit: int = COMMUNITY_REPORT_LIST_LIMIT) -> list[CommunityReport]:
        """List reports, most frequently reported first."""
        return await self.top_reports(max(limit, 0))
