#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Reconciliation result reporting for Zone Console.
Classifies per-line and per-domain outcomes returned by the backend.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from errors import is_already_gone

logger = logging.getLogger(__name__)


class ResultCategory(str, Enum):
    """Exactly one category per reported item."""

    FAILURE = "failure"
    TYPE_CHANGED = "type_changed"
    UPDATED = "updated"
    CREATED = "created"


@dataclass
class ReportItem:
    """One classified outcome."""

    category: ResultCategory
    label: str
    message: str = ""
    error: Optional[str] = None
    nameservers: List[str] = field(default_factory=list)
    details: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.category is not ResultCategory.FAILURE

    def to_line(self) -> str:
        text = f"[{self.category.value}] {self.label}"
        if self.message:
            text += f": {self.message}"
        if self.error:
            text += f" ({self.error})"
        return text


@dataclass
class Report:
    """Summary plus items in the order the backend returned them."""

    items: List[ReportItem] = field(default_factory=list)
    noun: str = "operations"

    @property
    def succeeded(self) -> int:
        return sum(1 for item in self.items if item.success)

    @property
    def failed(self) -> int:
        return sum(1 for item in self.items if not item.success)

    def count(self, category: ResultCategory) -> int:
        return sum(1 for item in self.items if item.category is category)

    def summary_text(self) -> str:
        return f"{self.succeeded} {self.noun} succeeded, {self.failed} {self.noun} failed."

    def to_lines(self) -> List[str]:
        lines = [f"Summary: {self.summary_text()}"]
        for item in self.items:
            lines.append(item.to_line())
            lines.extend(f"    {detail}" for detail in item.details)
            lines.extend(f"    NS {ns}" for ns in item.nameservers)
        return lines


@dataclass
class BulkDeleteReport:
    """Classified outcome of a bulk delete."""

    deleted: List[str] = field(default_factory=list)
    already_satisfied: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)

    @property
    def completed_ids(self) -> List[str]:
        """Ids that no longer exist, whether deleted now or before."""
        return self.deleted + self.already_satisfied

    def summary_text(self) -> str:
        text = f"Deleted {len(self.deleted)} records"
        if self.already_satisfied:
            text += f", {len(self.already_satisfied)} already gone"
        if self.failed:
            text += f", {len(self.failed)} failed"
        return text


def classify(result: Dict[str, Any]) -> ResultCategory:
    """Pick the category of one backend result; type change wins over update."""
    if not result.get("success"):
        return ResultCategory.FAILURE
    if result.get("typeChanged"):
        return ResultCategory.TYPE_CHANGED
    if result.get("updated"):
        return ResultCategory.UPDATED
    return ResultCategory.CREATED


def build_line_report(results: List[Dict[str, Any]]) -> Report:
    """
    Build the report for a bulk record apply.

    Args:
        results: Backend results with success/created/updated/typeChanged,
            line, message and optional error

    Returns:
        Report preserving input order
    """
    report = Report(noun="operations")
    for result in results or []:
        report.items.append(ReportItem(
            category=classify(result),
            label=result.get("line", "") or "",
            message=result.get("message", "") or "",
            error=result.get("error") or None,
        ))
    logger.info(f"Record apply: {report.summary_text()}")
    return report


def build_domain_report(results: List[Dict[str, Any]]) -> Report:
    """
    Build the report for an add-domains call.

    Successful domains carry their nameservers and any template record errors.
    """
    report = Report(noun="domains")
    for result in results or []:
        details = []
        if result.get("template_name"):
            details.append(f"Template: {result['template_name']}")
        if result.get("dns_records"):
            details.append(f"{result['dns_records']} DNS records added")
        details.extend(result.get("dns_errors") or [])

        report.items.append(ReportItem(
            category=ResultCategory.CREATED if result.get("success") else ResultCategory.FAILURE,
            label=result.get("domain", "") or "",
            message=result.get("message", "") or "",
            error=result.get("error") or None,
            nameservers=list(result.get("nameservers") or []),
            details=details,
        ))
    logger.info(f"Add domains: {report.summary_text()}")
    return report


def classify_bulk_delete(response: Dict[str, Any]) -> BulkDeleteReport:
    """
    Classify each result of a bulk delete.

    A "does not exist" / "not found" error means the record is already gone
    and is reported as satisfied rather than failed.
    """
    report = BulkDeleteReport()
    for result in (response or {}).get("results") or []:
        record_id = str(result.get("record_id", ""))
        if result.get("success"):
            report.deleted.append(record_id)
        elif is_already_gone(result.get("error")):
            logger.info(f"Record {record_id} already deleted: {result.get('error')}")
            report.already_satisfied.append(record_id)
        else:
            report.failed[record_id] = result.get("error") or "Unknown error"
    return report
