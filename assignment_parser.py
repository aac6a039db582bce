import io
from dataclasses import dataclass
from datetime import date
from typing import Optional

import pandas as pd

from date_normalizer import DateParseError, parse_flexible_date

# Accepted column spellings per logical field, highest priority first
COLUMN_ALIASES = {
    'employee_id': ('EmpID', 'empId', 'EmployeeID'),
    'project_id': ('ProjectID', 'projectId', 'ProjectId'),
    'start_date': ('DateFrom', 'dateFrom', 'StartDate'),
    'end_date': ('DateTo', 'dateTo', 'EndDate'),
}


@dataclass(frozen=True)
class AssignmentRecord:
    """One validated row: an employee assigned to a project over a date range."""
    employee_id: int
    project_id: int
    start_date: date
    # None means the assignment is still running
    end_date: Optional[date] = None

    @property
    def is_ongoing(self):
        return self.end_date is None


def resolve_column(row, field):
    """
    Return the value of the first alias for `field` that has a non-blank value in the row.
    Returns None if no alias is present or all of them are blank.
    """
    for column_name in COLUMN_ALIASES[field]:
        value = row.get(column_name)
        if value is None:
            continue
        if isinstance(value, str):
            if value.strip() == '':
                continue
        elif pd.isna(value):
            continue
        return value
    return None


def _parse_identifier(value):
    """Parse an employee or project number. Returns None unless it is a positive integer."""
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, float):
        if not value.is_integer():
            return None
        number = int(value)
    else:
        try:
            number = int(str(value).strip())
        except ValueError:
            return None
    return number if number > 0 else None


def parse_assignment_rows(rows):
    """
    Convert raw tabular rows into AssignmentRecords.

    Each row is checked on its own; a bad row is skipped and described in the
    error list, it never stops the batch.

    Args:
        rows: Iterable of mappings from column name to raw cell value

    Returns:
        Tuple of (list of AssignmentRecord, list of error strings)
    """
    records = []
    errors = []

    for index, row in enumerate(rows):
        row_number = index + 1

        employee_id = _parse_identifier(resolve_column(row, 'employee_id'))
        project_id = _parse_identifier(resolve_column(row, 'project_id'))
        if employee_id is None or project_id is None:
            errors.append(f"Row {row_number}: Invalid employee ID or project ID")
            continue

        start_text = resolve_column(row, 'start_date')
        try:
            start_date = parse_flexible_date(start_text)
        except DateParseError:
            start_date = None
        if start_date is None:
            shown = '' if start_text is None else start_text
            errors.append(f'Row {row_number}: Invalid date format for DateFrom: "{shown}"')
            continue

        # A missing or unreadable end date means the assignment is still running
        try:
            end_date = parse_flexible_date(resolve_column(row, 'end_date'))
        except DateParseError:
            end_date = None

        records.append(AssignmentRecord(
            employee_id=employee_id,
            project_id=project_id,
            start_date=start_date,
            end_date=end_date,
        ))

    return records, errors


def read_assignment_csv(csv_text):
    """
    Tokenize CSV text (header row first) into a list of row dicts.
    All cells are kept as trimmed text; blank lines are skipped.
    Structural problems raise pandas.errors.ParserError / EmptyDataError.
    """
    df = pd.read_csv(
        io.StringIO(csv_text),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
    )

    # Trim header names and cells
    df.columns = [str(col).strip() for col in df.columns]
    if not df.empty:
        df = df.apply(lambda column: column.str.strip())

    return df.to_dict(orient='records')
