import json

import pytest

from dealership_reports.cli import main as cli_main
from dealership_reports.features.auth.models import User
from dealership_reports.features.reports.registry import get_report

pytestmark = pytest.mark.asyncio


class RecordingTortoise:
    """Keeps the test database open and records what the CLI asks of Tortoise."""

    def __init__(self):
        self.calls = []

    async def init(self, config):
        self.calls.append("init")

    async def generate_schemas(self, safe=True):
        self.calls.append("generate_schemas")

    async def close_connections(self):
        self.calls.append("close_connections")


@pytest.fixture
def recording_tortoise(monkeypatch) -> RecordingTortoise:
    recorder = RecordingTortoise()
    monkeypatch.setattr(cli_main, "Tortoise", recorder)
    return recorder


async def test_run_report_never_creates_tables(recording_tortoise: RecordingTortoise, capsys):
    exit_code = await cli_main._run_report(get_report("user-role-distribution"), "primaryadmin", None, None)
    assert exit_code == 0
    assert recording_tortoise.calls == ["init", "close_connections"]

    envelope = json.loads(capsys.readouterr().out)
    assert envelope["meta"]["reportType"] == "user-role-distribution"
    assert envelope["data"]["overallStats"]["totalUsers"] == 3


async def test_run_report_for_unknown_user(recording_tortoise: RecordingTortoise, capsys):
    exit_code = await cli_main._run_report(get_report("user-role-distribution"), "ghost", None, None)
    assert exit_code == 1
    assert "User with username 'ghost' not found" in capsys.readouterr().out


async def test_create_admin_creates_tables_only_when_asked(recording_tortoise: RecordingTortoise):
    await cli_main._create_admin_user("newadmin", "newadmin@example.com", "initech", "password123")
    assert "generate_schemas" not in recording_tortoise.calls

    await cli_main._create_admin_user(
        "secondadmin", "secondadmin@example.com", "initech", "password123", create_schemas=True
    )
    assert recording_tortoise.calls.count("generate_schemas") == 1

    admin = await User.get(username="newadmin")
    assert admin.is_primary_admin is True
    assert admin.role == "company_super_admin"
