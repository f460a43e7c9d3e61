"""
CareComply Compliance — Status evaluation, per-client overrides, rollups.

ComplianceService lives in ``carecomply.compliance.service``.
"""

from carecomply.compliance.status import ComplianceStatus, evaluate_status, reduce_statuses
from carecomply.compliance.overrides import (
    ComplianceOverride,
    FolderOverride,
    OverrideSet,
    VisibleFolder,
    visible_folders,
)
from carecomply.compliance.aggregation import AggregationEngine, ClientComplianceSummary

__all__ = [
    "ComplianceStatus",
    "evaluate_status",
    "reduce_statuses",
    "ComplianceOverride",
    "FolderOverride",
    "OverrideSet",
    "VisibleFolder",
    "visible_folders",
    "AggregationEngine",
    "ClientComplianceSummary",
]
