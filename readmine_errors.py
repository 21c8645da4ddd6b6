# -*- coding: utf-8 -*-
# SPDX-License-Identifier: FAFOL

"""Errors reported to the user by readmine"""

from typing import List


class ReadmineError(ValueError):
    """Base class for every error readmine reports and exits on."""


class InvalidTimeRangeFormat(ReadmineError):
    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(f'Invalid format of time range "{text}"')


class InvalidMonthOffset(ReadmineError):
    def __init__(self, offset: int) -> None:
        self.offset = offset
        super().__init__(f'Cannot use month+{offset} in time range')


class InvalidWeekOffset(ReadmineError):
    def __init__(self, offset: int) -> None:
        self.offset = offset
        super().__init__(f'Cannot use week+{offset} in time range')


class InvalidTimeLogHours(ReadmineError):
    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(f"Invalid hours time log entry: '{text}'")


class InvalidIssueId(ReadmineError):
    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(f"Invalid issue id entry: '{text}'")


class InvalidDate(ReadmineError):
    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(f"Invalid date '{text}', expected YYYY-MM-DD")


class InvalidActivityName(ReadmineError):
    def __init__(self, name: str, available: List[str]) -> None:
        self.name = name
        self.available = available
        super().__init__(f'Invalid activity name "{name}". '
                         f'Available values: {", ".join(available)}')


class RequestFailed(ReadmineError):
    def __init__(self, status_code: int, reason: str = '') -> None:
        self.status_code = status_code
        self.reason = reason
        status = f'{status_code} {reason}' if reason else str(status_code)
        super().__init__(f'Request failed ({status})')


class NotLoggedIn(ReadmineError):
    def __init__(self) -> None:
        super().__init__('Server details not set. Please use "login" command first.')
