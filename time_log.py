# -*- coding: utf-8 -*-
# SPDX-License-Identifier: FAFOL

"""Parse the loosely formatted arguments of `readmine time add`"""

from readmine_errors import InvalidIssueId, InvalidTimeLogHours


def parse_hours(text: str) -> float:
    """Parse hours like "5", "5.5", " 6 h" or "7.8H"."""
    trimmed = text.lstrip().rstrip(' hH')
    try:
        if '_' in trimmed:
            raise ValueError(f'digit separators not allowed: {trimmed!r}')
        return float(trimmed)
    except ValueError as err:
        raise InvalidTimeLogHours(text) from err


def parse_issue(text: str) -> int:
    """Parse an issue id like "12345" or "#12345"."""
    trimmed = text.lstrip(' #').rstrip()
    try:
        if '_' in trimmed:
            raise ValueError(f'digit separators not allowed: {trimmed!r}')
        return int(trimmed)
    except ValueError as err:
        raise InvalidIssueId(text) from err
