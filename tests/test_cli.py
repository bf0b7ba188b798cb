"""Tests for the command line interface."""

import json

import pytest

from conftest import add_site
from publisher_migration.cli import build_parser, main
from publisher_migration.stores.sql import SQLStore


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("DATABASE_URL", "MIGRATION_NOTIFY_FREQUENCY", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def database(tmp_path, monkeypatch, clean_env):
    """SQLite database seeded with two legacy websites, exposed through DATABASE_URL."""
    url = f"sqlite:///{tmp_path}/legacy.db"
    store = SQLStore(url)
    store.create_all()
    add_site(store, "w1", "a.com", "contact@a.com", cost=50)
    add_site(store, "w2", "b.com", "owner@b.com", cost=80)
    monkeypatch.setenv("DATABASE_URL", url)
    return store


class TestParser:

    def test_migrate_defaults(self):
        args = build_parser().parse_args(["migrate"])

        assert args.dry_run is False
        assert args.batch == 10
        assert args.report_dir == "."

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 2
        assert "usage" in capsys.readouterr().out


class TestMigrateCommand:

    def test_dry_run_writes_report(self, database, tmp_path, capsys):
        report_dir = tmp_path / "reports"

        code = main(["migrate", "--dry-run", "--report-dir", str(report_dir)])

        assert code == 0
        reports = list(report_dir.glob("migration-report-*.json"))
        assert len(reports) == 1
        report = json.loads(reports[0].read_text())
        assert report["dry_run"] is True
        assert report["shadow_publishers_created"] == 2
        assert database.list_publishers() == []
        assert "Mode: DRY RUN" in capsys.readouterr().out

    def test_live_run(self, database, tmp_path):
        code = main(["migrate", "--report-dir", str(tmp_path)])

        assert code == 0
        assert len(database.list_publishers()) == 2

    def test_errors_give_exit_code_one(self, database, tmp_path):
        add_site(database, "w3", "c.com", "not-an-email")

        assert main(["migrate", "--report-dir", str(tmp_path)]) == 1

    def test_invalid_batch(self, tmp_path):
        assert main(["migrate", "--batch", "0", "--report-dir", str(tmp_path)]) == 2


class TestValidateCommand:

    def test_ready_data(self, database, tmp_path, capsys):
        html_path = tmp_path / "report.html"

        code = main(["validate", "--html", str(html_path)])

        assert code == 0
        assert html_path.read_text().startswith("<!DOCTYPE html>")
        assert "Ready for migration" in capsys.readouterr().out

    def test_blocking_errors(self, database):
        add_site(database, "w3", "c.com", "c@c.com", cost=-5)

        assert main(["validate"]) == 1

    def test_empty_in_memory_store(self, capsys):
        assert main(["validate"]) == 0


class TestEmergencyRollbackCommand:

    def test_requires_confirmation(self, database, capsys):
        assert main(["emergency-rollback"]) == 2
        assert "--yes" in capsys.readouterr().out

    def test_deletes_migration_data(self, database, tmp_path, capsys):
        main(["migrate", "--report-dir", str(tmp_path)])

        code = main(["emergency-rollback", "--yes"])

        assert code == 0
        assert database.list_publishers() == []
        assert "publishers: 2" in capsys.readouterr().out
