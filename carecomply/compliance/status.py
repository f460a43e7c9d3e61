"""
CareComply Compliance Rule Evaluator — due date → status.

Pure functions, no state. ``today`` is injectable for deterministic tests and
defaults to the current local date.
"""

from __future__ import annotations

from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Optional

from carecomply.documents.models import Document
from carecomply.taxonomy.models import Frequency

# Fixed for every document type.
DUE_SOON_WINDOW = timedelta(days=30)


class ComplianceStatus(str, Enum):
    NONE = "none"
    COMPLIANT = "compliant"
    DUE_SOON = "due-soon"
    OVERDUE = "overdue"
    NOT_REQUIRED = "not-required"


# Higher wins. none and not-required rank equally at the bottom.
STATUS_PRIORITY = {
    ComplianceStatus.OVERDUE: 3,
    ComplianceStatus.DUE_SOON: 2,
    ComplianceStatus.COMPLIANT: 1,
    ComplianceStatus.NONE: 0,
    ComplianceStatus.NOT_REQUIRED: 0,
}


def evaluate_status(due_date: Optional[date], today: Optional[date] = None) -> ComplianceStatus:
    """
    Map a due/expiry date to a status.

        absent                      → none
        due < today                 → overdue
        today <= due < today + 30d  → due-soon
        due >= today + 30d          → compliant
    """
    if due_date is None:
        return ComplianceStatus.NONE
    today = today or date.today()
    if due_date < today:
        return ComplianceStatus.OVERDUE
    if due_date < today + DUE_SOON_WINDOW:
        return ComplianceStatus.DUE_SOON
    return ComplianceStatus.COMPLIANT


def derive_due_date(document: Document, frequency: Frequency) -> Optional[date]:
    """
    The single canonical due-date rule: an explicit expiry date wins,
    otherwise upload date + frequency offset. As-needed documents without an
    expiry date are never due.
    """
    if document.expiry_date is not None:
        return document.expiry_date
    offset = frequency.offset
    if offset is None:
        return None
    return document.upload_date + offset


def document_status(
    document: Document,
    frequency: Frequency,
    today: Optional[date] = None,
) -> ComplianceStatus:
    """Status of a current document for a tracked obligation."""
    due = derive_due_date(document, frequency)
    if due is None:
        # Present and never due: the obligation is satisfied.
        return ComplianceStatus.COMPLIANT
    return evaluate_status(due, today)


def reduce_statuses(statuses: Iterable[ComplianceStatus]) -> ComplianceStatus:
    """Most severe status present; ties at the bottom collapse to none."""
    worst = ComplianceStatus.NONE
    for status in statuses:
        if STATUS_PRIORITY[status] > STATUS_PRIORITY[worst]:
            worst = status
    return worst
