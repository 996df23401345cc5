"""
Report aggregation for the sharing analysis.

Turns the scope registry and the detector's pair results into the report
document: a summary of pair classifications, an optional dump of every
scope's abstract and concrete sets, and the list of unexpected-sharing
incidents with per-address evidence.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..core.config import ReportConfig
from ..core.data_models import (
    CompletedScope, PairResult, PhysicalAccess, SharedAccess, SharingClass,
)


# Summary keys, in order of badness
SUMMARY_CLASSES = (
    SharingClass.UNSHARED,
    SharingClass.SHARED,
    SharingClass.UNEXPECTED,
)


class ReportAggregator:
    """Builds the report dictionary from analysis results."""

    def __init__(self, resolver, config: Optional[ReportConfig] = None):
        self.resolver = resolver
        self.config = config or ReportConfig()

    def describe_address(self, access: PhysicalAccess) -> str:
        if access.symbolic_type:
            return f"{access.symbolic_type}+0x{access.address - access.base_offset:x}"
        return f"0x{access.address:x}"

    def access_record(self, access: PhysicalAccess,
                      other: Optional[PhysicalAccess] = None) -> Dict[str, str]:
        """
        Describe one access, or a shared address seen by two accesses.

        The record names both program counters when the two accesses came
        from different code.
        """
        record = {'addr': self.describe_address(access)}
        if other is not None and other.program_counter != access.program_counter:
            record['pc1'] = self.resolver.describe(access.program_counter)
            record['pc2'] = self.resolver.describe(other.program_counter)
        else:
            record['pc'] = self.resolver.describe(access.program_counter)
        return record

    def scope_record(self, scope: CompletedScope) -> Dict[str, Any]:
        return {
            'name': scope.name,
            'aread': list(scope.abstract_read),
            'awrite': list(scope.abstract_write),
            'read': [self.access_record(a) for a in scope.concrete_read],
            'write': [self.access_record(a) for a in scope.concrete_write],
        }

    def incident_record(self, result: PairResult) -> Dict[str, Any]:
        return {
            's1': result.first.name,
            's2': result.second.name,
            'shared': [self._shared_record(s) for s in result.shared],
        }

    def _shared_record(self, shared: SharedAccess) -> Dict[str, str]:
        return self.access_record(shared.first, shared.second)

    def build(self, scopes: Sequence[CompletedScope],
              results: Iterable[PairResult]) -> Dict[str, Any]:
        """Consume every pair result and assemble the report."""
        counts = {cls: 0 for cls in SharingClass}
        compared = 0
        incidents: List[Dict[str, Any]] = []

        for result in results:
            compared += 1
            classification = result.classification
            counts[classification] += 1
            if classification is SharingClass.UNEXPECTED and self.config.emit_unexpected_sharing:
                incidents.append(self.incident_record(result))

        summary: Dict[str, Any] = {
            'total_scopes': len(scopes),
            'compared_scopes': compared,
        }
        for cls in SUMMARY_CLASSES:
            summary[cls.value] = counts[cls]
        if counts[SharingClass.IMPRECISE]:
            summary[SharingClass.IMPRECISE.value] = counts[SharingClass.IMPRECISE]

        report: Dict[str, Any] = {'scope-summary': summary}
        if self.config.emit_abstract_scopes:
            report['abstract-scopes'] = [self.scope_record(s) for s in scopes]
        if self.config.emit_unexpected_sharing:
            report['unexpected-sharing'] = incidents
        return report
