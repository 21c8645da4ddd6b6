# -*- coding: utf-8 -*-
# SPDX-License-Identifier: FAFOL
# pylint: disable=logging-fstring-interpolation

"""Redmine client: show and log time entries from the command line"""

import argparse
import logging
import sys
from typing import List, Optional

import arrow
import requests
from rich.console import Console
from rich.logging import RichHandler

from readmine import Config, NewTimeEntry, Redmine, TimeReport
from readmine_errors import InvalidDate, ReadmineError
from time_log import parse_hours, parse_issue
from time_range import TimeRange, parse_date

RANGE_HELP = ('time range for showing time entries: 2019-01-23..2019-05-09, '
              'week (current week), month (current month), '
              'week-1 (last week), week-2 (the week before last), '
              'month-1 (last month), '
              'month-1..week-1 (from the beginning of last month to the end of last week) etc.')

console = Console()
error_console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level="DEBUG" if verbose else "WARNING",
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=error_console,
                              rich_tracebacks=True,
                              tracebacks_suppress=[requests])]
    )
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='readmine', description='Redmine client')
    parser.add_argument('-v', '--verbose', action='store_true', help='debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    login = subparsers.add_parser('login', help='login to the Redmine server')
    login.add_argument('url', help='Full address of the Redmine server, e.g. "http://www.redmine.org"')
    login.add_argument('name', nargs='?', help='user login name')

    subparsers.add_parser('logout', help='log out of the Redmine server')
    subparsers.add_parser('user', help='show user info')

    time = subparsers.add_parser('time', help='show/add time entries',
                                 epilog='use "readmine time add -h" to log time')
    time.add_argument('range', nargs='?', default='week', help=RANGE_HELP)
    time.add_argument('rest', nargs=argparse.REMAINDER, help=argparse.SUPPRESS)
    return parser


def build_time_add_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='readmine time add', description='log a time entry')
    parser.add_argument('date', help='day the time was spent on, YYYY-MM-DD')
    parser.add_argument('hours', help='hours spent, e.g. 5, 5.5 or 6h')
    parser.add_argument('issue_id', help='issue id, e.g. 123 or #123')
    parser.add_argument('activity', help='activity name')
    parser.add_argument('comment', nargs='?', help='comment')
    return parser


def parse_new_time_entry(argv: List[str]) -> NewTimeEntry:
    """Build the entry for `readmine time add` from its arguments"""
    args = build_time_add_parser().parse_args(argv)
    try:
        spent_on = parse_date(args.date)
    except ValueError as err:
        raise InvalidDate(args.date) from err
    return NewTimeEntry(issue_id=parse_issue(args.issue_id),
                        spent_on=spent_on,
                        hours=parse_hours(args.hours),
                        activity_name=args.activity,
                        comments=args.comment)


def run(args: argparse.Namespace, redmine: Redmine) -> None:
    logger = logging.getLogger(__name__)
    logger.debug(f'Running {args.command}')

    if args.command == 'login':
        user = redmine.login(args.url, args.name)
        console.print(f'Logged in as {user.login}')
    elif args.command == 'logout':
        redmine.logout()
    elif args.command == 'user':
        console.print(redmine.user())
    elif args.command == 'time' and args.range == 'add':
        redmine.time_add(parse_new_time_entry(args.rest))
    elif args.command == 'time':
        if args.rest:
            build_parser().error(f'unrecognized arguments: {" ".join(args.rest)}')
        time_range = TimeRange.parse(args.range, arrow.now().date())
        logger.debug(f'Resolved {args.range} to {time_range}')
        console.print(TimeReport(time_range, redmine.time(time_range)))


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    try:
        run(args, Redmine(Config.load()))
    except (ReadmineError, requests.RequestException) as err:
        error_console.print(str(err), style='red', markup=False, highlight=False)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
