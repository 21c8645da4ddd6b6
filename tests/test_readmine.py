"""
Tests for the Redmine API wrapper and its config file.
"""

from datetime import date
from unittest.mock import MagicMock, patch

import pytest

from readmine import (
    API_KEY_HEADER,
    Config,
    NewTimeEntry,
    Redmine,
    TimeEntry,
    TimeEntryActivity,
    TimeReport,
    User,
)
from readmine_errors import InvalidActivityName, NotLoggedIn, RequestFailed
from time_range import TimeRange

USER_JSON = {
    "id": 7,
    "login": "jsmith",
    "firstname": "John",
    "lastname": "Smith",
    "mail": "jsmith@example.net",
    "created_on": "2019-01-10T09:00:00Z",
    "last_login_on": "2019-08-20T08:00:00Z",
    "api_key": "secret-key",
}


def time_entry_json(entry_id, hours=2.5, spent_on="2019-08-20"):
    return {
        "id": entry_id,
        "project": {"id": 1, "name": "Backend"},
        "issue": {"id": 123},
        "user": {"id": 7, "name": "John Smith"},
        "activity": {"id": 9, "name": "Development"},
        "hours": hours,
        "comments": "refactoring",
        "spent_on": spent_on,
        "created_on": "2019-08-20T10:00:00Z",
        "updated_on": "2019-08-20T10:00:00Z",
    }


def make_response(status_code=200, payload=None, reason="OK"):
    response = MagicMock()
    response.status_code = status_code
    response.reason = reason
    response.json.return_value = payload
    return response


@pytest.fixture
def config(tmp_path):
    config = Config(str(tmp_path / "readmine" / "config.ini"))
    config.url = "https://redmine.example.net/"
    config.api_key = "secret-key"
    return config


@pytest.fixture
def redmine(config):
    redmine = Redmine(config)
    redmine._session = MagicMock()
    return redmine


class TestConfig:
    """Tests for loading and saving the config file."""

    def test_missing_file_is_empty(self, tmp_path):
        config = Config.load(str(tmp_path / "missing.ini"))
        assert config.url is None
        assert config.api_key is None

    def test_save_and_load(self, config):
        config.save()
        loaded = Config.load(config.path)
        assert loaded.url == "https://redmine.example.net/"
        assert loaded.api_key == "secret-key"

    def test_clearing_keys(self, config):
        config.save()
        config.url = None
        config.api_key = None
        config.save()
        loaded = Config.load(config.path)
        assert loaded.url is None
        assert loaded.api_key is None

    def test_path_from_environment(self, tmp_path, monkeypatch):
        path = str(tmp_path / "env.ini")
        monkeypatch.setenv("READMINE_CONFIG", path)
        assert Config().path == path


class TestModels:
    """Tests for building models from Redmine JSON."""

    def test_user(self):
        user = User.from_json(USER_JSON)
        assert user.id == 7
        assert user.first_name == "John"
        assert user.last_name == "Smith"
        assert user.api_key == "secret-key"

    def test_user_never_logged_in(self):
        user = User.from_json(dict(USER_JSON, last_login_on=None))
        assert user.last_login_on == ""

    def test_time_entry(self):
        entry = TimeEntry.from_json(time_entry_json(1))
        assert entry.project == (1, "Backend")
        assert entry.issue_id == 123
        assert entry.activity == (9, "Development")
        assert entry.hours == 2.5
        assert entry.spent_on == date(2019, 8, 20)

    def test_time_entry_without_issue(self):
        payload = time_entry_json(1)
        del payload["issue"]
        payload["comments"] = None
        entry = TimeEntry.from_json(payload)
        assert entry.issue_id == -1
        assert entry.comments == ""

    def test_report_total(self):
        entries = [TimeEntry.from_json(time_entry_json(1, hours=2.5)),
                   TimeEntry.from_json(time_entry_json(2, hours=4))]
        report = TimeReport(TimeRange(date(2019, 8, 19), date(2019, 8, 25)), entries)
        assert report.total == 6.5


class TestNewTimeEntry:
    """Tests for the body of a new time entry."""

    activities = [TimeEntryActivity(8, "Design"), TimeEntryActivity(9, "Development", True)]

    def test_write_dict(self):
        entry = NewTimeEntry(issue_id=123, spent_on=date(2019, 8, 2), hours=1.5,
                             activity_name="Development", comments="review")
        assert entry.write_dict(self.activities) == {
            "time_entry": {
                "issue_id": 123,
                "spent_on": "2019-08-02",
                "hours": 1.5,
                "activity_id": 9,
                "comments": "review",
            }
        }

    def test_without_comment(self):
        entry = NewTimeEntry(123, date(2019, 8, 2), 1.5, "Design")
        assert "comments" not in entry.write_dict(self.activities)["time_entry"]

    def test_unknown_activity(self):
        entry = NewTimeEntry(123, date(2019, 8, 2), 1.5, "Sleeping")
        with pytest.raises(InvalidActivityName) as exc_info:
            entry.write_dict(self.activities)
        assert str(exc_info.value) == ('Invalid activity name "Sleeping". '
                                       'Available values: Design, Development')


class TestRedmine:
    """Tests for the requests made to Redmine."""

    def test_not_logged_in(self, tmp_path):
        redmine = Redmine(Config(str(tmp_path / "config.ini")))
        redmine._session = MagicMock()
        with pytest.raises(NotLoggedIn):
            redmine.user()
        redmine._session.get.assert_not_called()

    def test_user(self, redmine):
        redmine._session.get.return_value = make_response(payload={"user": USER_JSON})
        user = redmine.user()
        assert user.login == "jsmith"
        redmine._session.get.assert_called_once_with(
            "https://redmine.example.net/users/current.json",
            params=None,
            headers={API_KEY_HEADER: "secret-key"})

    def test_request_failed(self, redmine):
        redmine._session.get.return_value = make_response(401, reason="Unauthorized")
        with pytest.raises(RequestFailed) as exc_info:
            redmine.user()
        assert exc_info.value.status_code == 401
        assert str(exc_info.value) == "Request failed (401 Unauthorized)"

    def test_no_api_key_header_when_missing(self, redmine):
        redmine.config.api_key = None
        redmine._session.get.return_value = make_response(payload={"user": USER_JSON})
        redmine.user()
        assert redmine._session.get.call_args.kwargs["headers"] == {}

    def test_time_sends_range(self, redmine):
        redmine._session.get.return_value = make_response(payload={
            "time_entries": [time_entry_json(1)], "total_count": 1, "offset": 0, "limit": 100})
        entries = redmine.time(TimeRange(date(2019, 1, 23), date(2019, 5, 9)))
        assert [entry.id for entry in entries] == [1]
        params = redmine._session.get.call_args.kwargs["params"]
        assert params["user_id"] == "me"
        assert params["from"] == "2019-01-23"
        assert params["to"] == "2019-05-09"

    def test_time_pages(self, redmine):
        pages = [
            make_response(payload={"time_entries": [time_entry_json(1), time_entry_json(2)],
                                   "total_count": 3}),
            make_response(payload={"time_entries": [time_entry_json(3)],
                                   "total_count": 3}),
        ]
        offsets = []

        def get(uri, params=None, headers=None):
            offsets.append(params["offset"])
            return pages[len(offsets) - 1]

        redmine._session.get.side_effect = get
        entries = redmine.time(TimeRange(date(2019, 8, 1), date(2019, 8, 31)))
        assert [entry.id for entry in entries] == [1, 2, 3]
        assert offsets == [0, 2]

    def test_time_empty(self, redmine):
        redmine._session.get.return_value = make_response(payload={
            "time_entries": [], "total_count": 0})
        assert redmine.time(TimeRange(date(2019, 8, 1), date(2019, 8, 31))) == []

    def test_activities(self, redmine):
        redmine._session.get.return_value = make_response(payload={"time_entry_activities": [
            {"id": 8, "name": "Design"},
            {"id": 9, "name": "Development", "is_default": True},
        ]})
        activities = redmine.activities()
        assert activities == [TimeEntryActivity(8, "Design"),
                              TimeEntryActivity(9, "Development", True)]

    def test_time_add(self, redmine):
        redmine._session.get.return_value = make_response(payload={"time_entry_activities": [
            {"id": 9, "name": "Development"}]})
        redmine._session.post.return_value = make_response(201, reason="Created")
        redmine.time_add(NewTimeEntry(123, date(2019, 8, 2), 1.5, "Development"))
        redmine._session.post.assert_called_once_with(
            "https://redmine.example.net/time_entries.json",
            json={"time_entry": {"issue_id": 123, "spent_on": "2019-08-02",
                                 "hours": 1.5, "activity_id": 9}},
            headers={API_KEY_HEADER: "secret-key"})

    def test_time_add_not_created(self, redmine):
        redmine._session.get.return_value = make_response(payload={"time_entry_activities": [
            {"id": 9, "name": "Development"}]})
        redmine._session.post.return_value = make_response(422, reason="Unprocessable Entity")
        with pytest.raises(RequestFailed):
            redmine.time_add(NewTimeEntry(123, date(2019, 8, 2), 1.5, "Development"))

    def test_login_stores_api_key(self, tmp_path):
        config = Config(str(tmp_path / "config.ini"))
        redmine = Redmine(config)
        redmine._session = MagicMock()
        redmine._session.get.return_value = make_response(payload={"user": USER_JSON})
        with patch("readmine.Prompt.ask", return_value="hunter2") as ask:
            user = redmine.login("https://redmine.example.net", "jsmith")
        ask.assert_called_once_with("Password", password=True)
        assert user.login == "jsmith"
        redmine._session.get.assert_called_once_with(
            "https://redmine.example.net/users/current.json", auth=("jsmith", "hunter2"))
        loaded = Config.load(config.path)
        assert loaded.url == "https://redmine.example.net"
        assert loaded.api_key == "secret-key"

    def test_login_refused(self, tmp_path):
        config = Config(str(tmp_path / "config.ini"))
        redmine = Redmine(config)
        redmine._session = MagicMock()
        redmine._session.get.return_value = make_response(401, reason="Unauthorized")
        with patch("readmine.Prompt.ask", return_value="wrong"):
            with pytest.raises(RequestFailed):
                redmine.login("https://redmine.example.net", "jsmith")
        assert Config.load(config.path).api_key is None

    def test_logout(self, redmine):
        redmine.logout()
        loaded = Config.load(redmine.config.path)
        assert loaded.url is None
        assert loaded.api_key is None
