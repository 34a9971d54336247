"""
Workflows module - orchestration of quality runs over stored content.
"""
from workflows.base import ContentWorkflow
from workflows.quality_audit import QualityAuditWorkflow

__all__ = [
    "ContentWorkflow",
    "QualityAuditWorkflow",
]
