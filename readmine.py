# -*- coding: utf-8 -*-
# SPDX-License-Identifier: FAFOL
# pylint: disable=logging-fstring-interpolation

"""Wrapper for the Redmine REST API, time logging part"""

import configparser
import logging
import os
from dataclasses import dataclass
from datetime import date
from os.path import dirname, expanduser, isfile, join
from typing import Any, Dict, List, Optional, Tuple

import arrow
import requests
from rich.console import Console, ConsoleOptions, RenderResult
from rich.progress import Progress
from rich.prompt import Prompt
from rich.table import Table

from readmine_errors import InvalidActivityName, NotLoggedIn, RequestFailed
from time_range import DATE_FORMAT, TimeRange

CONFIG_ENV = 'READMINE_CONFIG'
CONFIG_FILE = join('~', '.config', 'readmine', 'config.ini')
API_KEY_HEADER = 'X-Redmine-API-Key'
PAGE_SIZE = 100


def parse_day(date_str: str) -> date:
    """Parse a Redmine `YYYY-MM-DD` date"""
    return arrow.get(date_str, DATE_FORMAT).date()


def format_day(day: date) -> str:
    """Format a date the way Redmine expects it"""
    return arrow.Arrow.fromdate(day).format(DATE_FORMAT)


class Config:
    """The `[server]` section of the readmine config file"""

    def __init__(self, path: Optional[str] = None) -> None:
        self.logger = logging.getLogger('Config')
        self.path = path or os.environ.get(CONFIG_ENV) or expanduser(CONFIG_FILE)
        self._config = configparser.ConfigParser()
        self._config.optionxform = lambda option: option  # return case-sensitive keys
        self._config.read_dict({'server': {}})

    @classmethod
    def load(cls, path: Optional[str] = None) -> 'Config':
        config = cls(path)
        if isfile(config.path):
            config.logger.debug(f'Loading config file {config.path}')
            config._config.read(config.path, encoding='utf-8')
        else:
            config.logger.debug(f'No config file at {config.path}, starting empty')
        return config

    def save(self) -> None:
        config_dir = dirname(self.path)
        if config_dir:
            os.makedirs(config_dir, exist_ok=True)
        with open(self.path, encoding='utf-8', mode='w') as config_file:
            self._config.write(config_file)
        self.logger.debug(f'Saved config file {self.path}')

    def _get(self, key: str) -> Optional[str]:
        return self._config['server'].get(key) or None

    def _set(self, key: str, value: Optional[str]) -> None:
        if value is None:
            self._config.remove_option('server', key)
        else:
            self._config['server'][key] = value

    @property
    def url(self) -> Optional[str]:
        return self._get('url')

    @url.setter
    def url(self, value: Optional[str]) -> None:
        self._set('url', value)

    @property
    def api_key(self) -> Optional[str]:
        return self._get('api_key')

    @api_key.setter
    def api_key(self, value: Optional[str]) -> None:
        self._set('api_key', value)


@dataclass
class User:
    """Redmine account, as returned by /users/current"""
    # pylint: disable=too-many-instance-attributes
    id: int
    login: str
    first_name: str
    last_name: str
    mail: str
    created_on: str
    last_login_on: str
    api_key: str

    @classmethod
    def from_json(cls, user: Dict[str, Any]) -> 'User':
        return cls(id=user['id'],
                   login=user.get('login', ''),
                   first_name=user.get('firstname', ''),
                   last_name=user.get('lastname', ''),
                   mail=user.get('mail', ''),
                   created_on=user.get('created_on', ''),
                   last_login_on=user.get('last_login_on') or '',
                   api_key=user.get('api_key', ''))

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        # pylint: disable=unused-argument
        yield f"[b]User:[/b] #{self.id} {self.first_name} {self.last_name} ({self.login})"
        my_table = Table("Attribute", "Value")
        my_table.add_row("id", str(self.id))
        my_table.add_row("login", self.login)
        my_table.add_row("first name", self.first_name)
        my_table.add_row("last name", self.last_name)
        my_table.add_row("mail", self.mail)
        my_table.add_row("created on", self.created_on)
        my_table.add_row("last login on", self.last_login_on)
        my_table.add_row("api key", self.api_key)
        yield my_table


@dataclass
class TimeEntryActivity:
    id: int
    name: str
    is_default: bool = False

    @classmethod
    def from_json(cls, activity: Dict[str, Any]) -> 'TimeEntryActivity':
        return cls(id=activity['id'],
                   name=activity['name'],
                   is_default=activity.get('is_default', False))

    def __str__(self) -> str:
        return self.name


def _id_and_name(obj: Optional[Dict[str, Any]]) -> Tuple[int, str]:
    if not obj:
        return (-1, '')
    return (obj.get('id', -1), obj.get('name', ''))


@dataclass
class TimeEntry:
    """A logged time entry, as returned by /time_entries"""
    # pylint: disable=too-many-instance-attributes
    id: int
    project: Tuple[int, str]
    issue_id: int
    user: Tuple[int, str]
    activity: Tuple[int, str]
    hours: float
    comments: str
    spent_on: date
    created_on: str
    updated_on: str

    @classmethod
    def from_json(cls, entry: Dict[str, Any]) -> 'TimeEntry':
        return cls(id=entry['id'],
                   project=_id_and_name(entry.get('project')),
                   issue_id=(entry.get('issue') or {}).get('id', -1),
                   user=_id_and_name(entry.get('user')),
                   activity=_id_and_name(entry.get('activity')),
                   hours=float(entry['hours']),
                   comments=entry.get('comments') or '',
                   spent_on=parse_day(entry['spent_on']),
                   created_on=entry.get('created_on', ''),
                   updated_on=entry.get('updated_on', ''))

    def __str__(self) -> str:
        return f'{self.spent_on} {self.hours}h #{self.issue_id} {self.project[1]}'


@dataclass
class NewTimeEntry:
    """A time entry to be logged; the activity is still a name"""
    issue_id: int
    spent_on: date
    hours: float
    activity_name: str
    comments: Optional[str] = None

    def write_dict(self, activities: List[TimeEntryActivity]) -> Dict[str, Any]:
        """Build the request body, resolving the activity name to its id.

        Raises:
            InvalidActivityName: if no activity has that name
        """
        for activity in activities:
            if activity.name == self.activity_name:
                break
        else:
            raise InvalidActivityName(self.activity_name,
                                      [a.name for a in activities])
        entry = {
            'issue_id': self.issue_id,
            'spent_on': format_day(self.spent_on),
            'hours': self.hours,
            'activity_id': activity.id,
        }
        if self.comments is not None:
            entry['comments'] = self.comments
        return {'time_entry': entry}


class TimeReport:
    """Time entries of a range with their total, renderable with rich."""

    def __init__(self, time_range: TimeRange, entries: List[TimeEntry]) -> None:
        self.time_range = time_range
        self.entries = entries

    @property
    def total(self) -> float:
        return sum(entry.hours for entry in self.entries)

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        # pylint: disable=unused-argument
        my_table = Table("Date", "Hours", "Issue", "Project", "Comment",
                         title=f"Time entries from {self.time_range.start} to {self.time_range.end}",
                         show_footer=True)
        for entry in self.entries:
            my_table.add_row(str(entry.spent_on),
                             f"[b]{entry.hours:g}h[/b]",
                             f"#{entry.issue_id}",
                             entry.project[1],
                             f"[yellow]{entry.comments}[/yellow]")
        my_table.columns[0].footer = "Total time"
        my_table.columns[1].footer = f"{self.total:g}h"
        yield my_table


class Redmine:
    """Wrapper for the Redmine REST API"""

    def __init__(self, config: Config) -> None:
        self.logger = logging.getLogger('Redmine')
        self.config = config
        self._session = requests.Session()
        self._session.headers.update({'accept': 'application/json'})

    @property
    def url(self) -> str:
        if not self.config.url:
            raise NotLoggedIn()
        return self.config.url.rstrip('/')

    def _headers(self) -> Dict[str, str]:
        if self.config.api_key:
            return {API_KEY_HEADER: self.config.api_key}
        return {}

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        uri = f'{self.url}/{path}'
        self.logger.debug(f'GET {uri} {params or ""}')
        response = self._session.get(uri, params=params, headers=self._headers())
        if response.status_code != requests.codes.ok:
            raise RequestFailed(response.status_code, response.reason)
        return response.json()

    def login(self, url: str, login_name: Optional[str] = None) -> User:
        """Log into Redmine with login and password, and remember the API key.

        Args:
            url (str): full address of the server, e.g. "https://www.redmine.org"
            login_name (str): login name, prompted for if not given

        Raises:
            RequestFailed: if the server refuses the credentials

        Returns:
            User: the logged in user
        """
        if login_name is None:
            login_name = Prompt.ask('Login')
        password = Prompt.ask('Password', password=True)

        uri = f"{url.rstrip('/')}/users/current.json"
        self.logger.debug(f'Logging into {uri} as {login_name}')
        response = self._session.get(uri, auth=(login_name, password))
        if response.status_code != requests.codes.ok:
            raise RequestFailed(response.status_code, response.reason)
        user = User.from_json(response.json()['user'])

        self.config.url = url
        self.config.api_key = user.api_key
        self.config.save()
        self.logger.info(f'Logged in as {user.login}')
        return user

    def logout(self) -> None:
        """Forget the server and API key"""
        self.config.url = None
        self.config.api_key = None
        self.config.save()

    def user(self) -> User:
        """Fetch the current user"""
        return User.from_json(self._get('users/current.json')['user'])

    def time(self, time_range: TimeRange) -> List[TimeEntry]:
        """Fetch the current user's time entries within a range.

        Args:
            time_range (TimeRange): the inclusive range of days

        Raises:
            RequestFailed: on error fetching a page

        Returns:
            List[TimeEntry]: the time entries, in server order
        """
        start, end = time_range.format()
        parameters = {
            'user_id': 'me',
            'from': start,
            'to': end,
            'offset': 0,
            'limit': PAGE_SIZE,
        }
        entries: List[TimeEntry] = []
        self.logger.debug(f'Getting time entries for {time_range}')
        with Progress(transient=True) as progress:
            entries_task = progress.add_task(
                f'Getting time entries {start}..{end}:', total=None)
            while True:
                page = self._get('time_entries.json', params=parameters)
                page_entries = page.get('time_entries', [])
                entries.extend(map(TimeEntry.from_json, page_entries))
                total = page.get('total_count', len(entries))
                progress.update(entries_task, total=total, completed=len(entries))
                if not page_entries or len(entries) >= total:
                    break
                parameters['offset'] = len(entries)
        self.logger.debug(f'Got {len(entries)} time entries')
        return entries

    def activities(self) -> List[TimeEntryActivity]:
        """Fetch the activities time can be logged against"""
        data = self._get('enumerations/time_entry_activities.json')
        return [TimeEntryActivity.from_json(activity)
                for activity in data['time_entry_activities']]

    def time_add(self, entry: NewTimeEntry) -> None:
        """Log a new time entry.

        Raises:
            InvalidActivityName: if the activity does not exist on the server
            RequestFailed: if the server does not create the entry
        """
        body = entry.write_dict(self.activities())
        uri = f'{self.url}/time_entries.json'
        self.logger.debug(f'POST {uri} {body}')
        response = self._session.post(uri, json=body, headers=self._headers())
        if response.status_code != requests.codes.created:
            raise RequestFailed(response.status_code, response.reason)
        self.logger.info(f'Logged {entry.hours}h on #{entry.issue_id}')
