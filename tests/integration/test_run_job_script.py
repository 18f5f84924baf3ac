"""
Tests for the command-line job launcher
"""

import pytest
from pathlib import Path
from scripts import run_job as run_job_script
from models.base import TriggerOrigin
from tests.helpers import fetch_persons, write_person_csv


@pytest.fixture
def cli_settings(test_settings, test_engine, monkeypatch):
    monkeypatch.setattr(run_job_script, "settings", test_settings)
    return test_settings


@pytest.mark.asyncio
async def test_import_exit_code(cli_settings, session_factory, mock_person_rows, capsys):
    write_person_csv(Path(cli_settings.IMPORT_FILE_PATH), mock_person_rows)

    code = await run_job_script.run_job("import", TriggerOrigin.MANUAL, restartable=False)

    assert code == 0
    assert capsys.readouterr().out.strip() == "Import job completed successfully"
    assert len(await fetch_persons(session_factory)) == 3


@pytest.mark.asyncio
async def test_failed_import_exit_code(cli_settings, capsys):
    code = await run_job_script.run_job("import", TriggerOrigin.MANUAL, restartable=False)

    assert code == 1
    assert capsys.readouterr().out.startswith("Import job failed: CSV file not found")


@pytest.mark.asyncio
async def test_scheduled_export(cli_settings):
    code = await run_job_script.run_job("export", TriggerOrigin.SCHEDULED, restartable=False)

    assert code == 0
    assert list(Path(cli_settings.SCHEDULED_EXPORT_DIR).glob("scheduled_export_*.csv"))


def test_rejects_unknown_job_name():
    with pytest.raises(SystemExit):
        run_job_script.main(["cleanup"])
