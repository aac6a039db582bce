import math
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import List, Tuple

from assignment_parser import AssignmentRecord, parse_assignment_rows

SECONDS_PER_DAY = 24 * 60 * 60

NO_PAIRS_HEADLINE = 'No employee pairs found that worked together'


@dataclass(frozen=True)
class ProjectOverlap:
    """Overlap of one pair on one project. Dates are the clipped overlap, not the assignment dates."""
    project_id: int
    overlap_days: int
    date_from: date
    date_to: date


@dataclass(frozen=True)
class PairAggregate:
    """Total days an employee pair worked together, with one entry per shared project overlap."""
    emp1: int
    emp2: int
    total_days: int
    common_projects: Tuple[ProjectOverlap, ...]

    @property
    def key(self):
        return (self.emp1, self.emp2)


@dataclass
class _PairAccumulator:
    """Running total for a pair while project groups are processed."""
    emp1: int
    emp2: int
    total_days: int = 0
    common_projects: List[ProjectOverlap] = field(default_factory=list)

    def add(self, overlap):
        self.total_days += overlap.overlap_days
        self.common_projects.append(overlap)

    def freeze(self):
        return PairAggregate(
            emp1=self.emp1,
            emp2=self.emp2,
            total_days=self.total_days,
            common_projects=tuple(self.common_projects),
        )


@dataclass(frozen=True)
class CollaborationSummary:
    total_records: int
    unique_employees: int
    unique_projects: int
    employee_pairs: int


@dataclass(frozen=True)
class AnalysisResult:
    top_pair: str
    all_pairs: Tuple[PairAggregate, ...]
    summary: CollaborationSummary
    processed_data: Tuple[AssignmentRecord, ...]
    errors: Tuple[str, ...]
    as_of: datetime


def pair_key(employee_a, employee_b):
    """Canonical (smaller, larger) key so both orderings of a pair share one aggregate."""
    return (min(employee_a, employee_b), max(employee_a, employee_b))


def _as_moment(value):
    """Dates become midnight datetimes; datetimes pass through."""
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def _resolve_as_of(as_of):
    if as_of is None:
        return datetime.now()
    return _as_moment(as_of)


def overlap_interval(start1, end1, start2, end2, as_of):
    """
    Return the (start, end) moments shared by two assignments.
    A missing end date is read as the as-of moment. The interval may be empty (start > end).
    """
    actual_end1 = _as_moment(end1) if end1 is not None else as_of
    actual_end2 = _as_moment(end2) if end2 is not None else as_of

    overlap_start = max(_as_moment(start1), _as_moment(start2))
    overlap_end = min(actual_end1, actual_end2)
    return overlap_start, overlap_end


def _inclusive_days(overlap_start, overlap_end):
    if overlap_start > overlap_end:
        return 0
    elapsed = (overlap_end - overlap_start).total_seconds() / SECONDS_PER_DAY
    return math.ceil(elapsed) + 1


def calculate_overlap(start1, end1, start2, end2, as_of=None):
    """
    Number of days two assignments overlap, counting both boundary days.
    A shared single day counts as 1. Disjoint ranges give 0.

    Args:
        start1, end1: First assignment; end1 may be None for an ongoing assignment
        start2, end2: Second assignment
        as_of: Moment used as the end of ongoing assignments (defaults to now)

    Returns:
        Overlap in whole days
    """
    as_of = _resolve_as_of(as_of)
    overlap_start, overlap_end = overlap_interval(start1, end1, start2, end2, as_of)
    return _inclusive_days(overlap_start, overlap_end)


def group_by_project(records):
    """Group records by project id, keeping projects and records in first-seen order."""
    project_groups = {}
    for record in records:
        project_groups.setdefault(record.project_id, []).append(record)
    return project_groups


def _collect_pairs(project_groups, as_of):
    pair_map = {}

    for project_id, assignments in project_groups.items():
        for i in range(len(assignments)):
            for j in range(i + 1, len(assignments)):
                first = assignments[i]
                second = assignments[j]

                # Two stints of the same person are not a collaboration
                if first.employee_id == second.employee_id:
                    continue

                overlap_start, overlap_end = overlap_interval(
                    first.start_date, first.end_date,
                    second.start_date, second.end_date,
                    as_of,
                )
                overlap_days = _inclusive_days(overlap_start, overlap_end)
                if overlap_days <= 0:
                    continue

                key = pair_key(first.employee_id, second.employee_id)
                if key not in pair_map:
                    pair_map[key] = _PairAccumulator(emp1=key[0], emp2=key[1])

                pair_map[key].add(ProjectOverlap(
                    project_id=project_id,
                    overlap_days=overlap_days,
                    date_from=overlap_start.date(),
                    date_to=overlap_end.date(),
                ))

    return pair_map


def describe_top_pair(ranked_pairs):
    if not ranked_pairs:
        return NO_PAIRS_HEADLINE
    top = ranked_pairs[0]
    return f"Employees {top.emp1} and {top.emp2} worked together for {top.total_days} days"


def analyze_collaborations(records, as_of=None, errors=()):
    """
    Find every pair of employees who overlapped on a shared project and total their days together.

    Args:
        records: Validated AssignmentRecords
        as_of: Date or datetime treated as "now" for ongoing assignments.
               Read once; defaults to the current moment, so results for
               ongoing assignments change from day to day unless it is fixed.
        errors: Row-level parse errors to carry into the result

    Returns:
        AnalysisResult with pairs ranked by total days, most first
    """
    records = tuple(records)
    as_of = _resolve_as_of(as_of)

    project_groups = group_by_project(records)
    pair_map = _collect_pairs(project_groups, as_of)

    # sorted() is stable, so tied pairs keep first-encounter order
    ranked = sorted(pair_map.values(), key=lambda pair: pair.total_days, reverse=True)
    ranked_pairs = tuple(pair.freeze() for pair in ranked)

    summary = CollaborationSummary(
        total_records=len(records),
        unique_employees=len({record.employee_id for record in records}),
        unique_projects=len(project_groups),
        employee_pairs=len(ranked_pairs),
    )

    return AnalysisResult(
        top_pair=describe_top_pair(ranked_pairs),
        all_pairs=ranked_pairs,
        summary=summary,
        processed_data=records,
        errors=tuple(errors),
        as_of=as_of,
    )


def analyze_assignment_rows(rows, as_of=None):
    """Parse raw rows and analyze the valid ones; rejected rows end up in result.errors."""
    records, errors = parse_assignment_rows(rows)
    return analyze_collaborations(records, as_of=as_of, errors=errors)
