"""
Merging of duplicate constructs.

A method is typically declared in a header and defined in a source file; both
occurrences share a qualified name. Merging keeps one record per qualified
name, seeded from the first occurrence, with every location and every piece
of documentation preserved. Disagreements are reported, never fatal.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from extraction.models import Construct, MergeState

logger = logging.getLogger(__name__)

DOC_FRAGMENT_SEPARATOR = "\n\n"

CONFLICT_DOCSTRING = "docstring"
CONFLICT_SIGNATURE = "signature"


@dataclass
class MergeConflict:
    """A disagreement found while merging two occurrences."""

    qualified_name: str
    kind: str
    message: str
    locations: List[str] = field(default_factory=list)


@dataclass
class MergeResult:
    """Merged constructs plus the conflicts found on the way."""

    constructs: List[Construct]
    conflicts: List[MergeConflict] = field(default_factory=list)

    @property
    def conflict_count(self) -> int:
        return len(self.conflicts)


def detect_conflicts(merged: Construct, occurrence: Construct) -> List[MergeConflict]:
    """Compare a later occurrence against the record it is merged into.

    Flags textually different non-empty doc comments and different parameter
    counts.
    """
    conflicts = []
    locations = [merged.location, occurrence.location]

    if merged.doc_comment and occurrence.doc_comment and merged.doc_comment != occurrence.doc_comment:
        conflicts.append(
            MergeConflict(
                qualified_name=merged.qualified_name,
                kind=CONFLICT_DOCSTRING,
                message=f"Different docstring content in {merged.location} vs {occurrence.location}",
                locations=locations,
            )
        )

    if len(merged.parameters) != len(occurrence.parameters):
        conflicts.append(
            MergeConflict(
                qualified_name=merged.qualified_name,
                kind=CONFLICT_SIGNATURE,
                message=f"Parameter count mismatch: {len(merged.parameters)} vs {len(occurrence.parameters)}",
                locations=locations,
            )
        )
    return conflicts


def _merge_group(group: List[Construct], log: logging.Logger) -> MergeResult:
    first = group[0]
    merged = copy.deepcopy(first)
    merged.merge_state = MergeState(is_merged=True)

    conflicts: List[MergeConflict] = []
    for index, occurrence in enumerate(group):
        merged.merge_state.source_locations.append(occurrence.location)
        if occurrence.doc_comment:
            merged.merge_state.doc_fragments.append(occurrence.doc_comment)
        if index == 0:
            continue
        for conflict in detect_conflicts(merged, occurrence):
            log.warning("Merge conflict for %s: %s", conflict.qualified_name, conflict.message)
            conflicts.append(conflict)

    if merged.merge_state.doc_fragments:
        merged.doc_comment = DOC_FRAGMENT_SEPARATOR.join(merged.merge_state.doc_fragments)
    return MergeResult(constructs=[merged], conflicts=conflicts)


def merge_constructs(
    constructs: List[Construct],
    log: Optional[logging.Logger] = None,
) -> MergeResult:
    """Collapse constructs sharing a qualified name into single records.

    Args:
        constructs: Raw constructs, in discovery order.
        log: Logger to report conflicts through; defaults to this module's logger.

    Returns:
        MergeResult whose constructs are ordered by first appearance of each
        qualified name, followed by the unnamed constructs in input order.
    """
    log = log or logger
    groups: Dict[str, List[Construct]] = {}
    standalone: List[Construct] = []

    for construct in constructs:
        if not construct.qualified_name:
            standalone.append(construct)
            continue
        groups.setdefault(construct.qualified_name, []).append(construct)

    result = MergeResult(constructs=[])
    for qualified_name, group in groups.items():
        if len(group) == 1:
            result.constructs.append(group[0])
            continue
        log.debug("Merging %d occurrences of %s", len(group), qualified_name)
        merged = _merge_group(group, log)
        result.constructs.extend(merged.constructs)
        result.conflicts.extend(merged.conflicts)

    result.constructs.extend(standalone)

    if result.conflicts:
        log.warning("Found %d docstring conflicts during merging", result.conflict_count)
    log.info(
        "Merged %d constructs into %d unique records",
        len(constructs),
        len(result.constructs),
    )
    return result
