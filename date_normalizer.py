import re
import warnings
from datetime import date

import pandas as pd
from dateutil import parser as dateutil_parser

NULL_DATE_LITERAL = "null"

_COMPACT_PATTERN = re.compile(r"^\d{8}$")
_SLASHED_PATTERN = re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$")
_DOTTED_PATTERN = re.compile(r"^\d{1,2}\.\d{1,2}\.\d{4}$")
_DASHED_PATTERN = re.compile(r"^\d{1,2}-\d{1,2}-\d{4}$")


class DateParseError(ValueError):
    """Raised when non-empty date text matches none of the supported formats."""

    def __init__(self, text):
        super().__init__(f'Unrecognized date: "{text}"')
        self.text = text


def _build_date(year, month, day):
    """Return a date for 1-indexed components, or None if no such calendar day exists."""
    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def _parse_general(text):
    """
    Permissive parse through pandas. Handles ISO YYYY-MM-DD and most written forms.
    Returns None when the text cannot be read as a date.
    """
    with warnings.catch_warnings():
        # pandas warns when it has to guess day-first vs month-first
        warnings.simplefilter("ignore")
        try:
            parsed = pd.to_datetime(text, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
    if parsed is not None and not pd.isna(parsed):
        return parsed.date()

    # pandas gives NaT outside its nanosecond range (1677-2262), e.g. 9999-12-31
    try:
        return dateutil_parser.parse(text).date()
    except (ValueError, OverflowError):
        return None


def _parse_compact(text):
    """YYYYMMDD"""
    if not _COMPACT_PATTERN.match(text):
        return None
    return _build_date(text[0:4], text[4:6], text[6:8])


def _parse_slashed(text):
    """
    D/M/YYYY or M/D/YYYY. Day-first is tried first and kept only if it lands in
    the same year; otherwise the month-first reading is used if it is a real date.
    """
    if not _SLASHED_PATTERN.match(text):
        return None
    parts = text.split("/")

    day_first = _build_date(parts[2], parts[1], parts[0])
    if day_first is not None and day_first.year == int(parts[2]):
        return day_first

    return _build_date(parts[2], parts[0], parts[1])


def _parse_dotted(text):
    """D.M.YYYY"""
    if not _DOTTED_PATTERN.match(text):
        return None
    parts = text.split(".")
    return _build_date(parts[2], parts[1], parts[0])


def _parse_dashed(text):
    """D-M-YYYY (four digit year last)"""
    if not _DASHED_PATTERN.match(text):
        return None
    parts = text.split("-")
    return _build_date(parts[2], parts[1], parts[0])


# Tried in this order after the general parse. Changing the order changes results.
_PATTERN_PARSERS = (_parse_compact, _parse_slashed, _parse_dotted, _parse_dashed)


def is_blank_date(value):
    """True for values that mean "no date": None, NaN, blank text or the null literal."""
    if value is None:
        return True
    if not isinstance(value, str):
        return bool(pd.isna(value))
    text = value.strip()
    return text == "" or text.lower() == NULL_DATE_LITERAL


def parse_flexible_date(value):
    """
    Convert a date token from an assignment file into a calendar date.

    Args:
        value: Raw cell value, normally text

    Returns:
        A datetime.date, or None when the value is blank or the "null" literal
        (an open-ended assignment).

    Raises:
        DateParseError: if the value is not blank but no supported format matches.
    """
    if is_blank_date(value):
        return None

    if isinstance(value, date):
        return value if type(value) is date else value.date()

    text = str(value).strip()

    resolved = _parse_general(text)
    if resolved is not None:
        return resolved

    for parser in _PATTERN_PARSERS:
        resolved = parser(text)
        if resolved is not None:
            return resolved

    raise DateParseError(text)
