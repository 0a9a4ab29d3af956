"""Unit tests for the database tool in scripts/migrate.py."""

import importlib.util
from pathlib import Path

import pytest

SCRIPT = Path(__file__).resolve().parents[4] / "scripts" / "migrate.py"


@pytest.fixture(scope="module")
def migrate():
    spec = importlib.util.spec_from_file_location("brandguard_migrate", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestMigrateScript:
    """Test cases for command parsing and legacy import."""

    def test_commands(self, migrate):
        parser = migrate.build_parser()

        assert parser.parse_args(["upgrade"]).revision == "head"
        assert parser.parse_args(["downgrade", "-1"]).func is migrate.downgrade
        assert parser.parse_args(["revision", "add tags", "--empty"]).empty is True
        with pytest.raises(SystemExit):
            parser.parse_args(["stamp", "001"])

    def test_import_missing_file(self, migrate, tmp_path, capsys):
        args = migrate.build_parser().parse_args(["import-legacy", str(tmp_path / "nope.json")])

        assert args.func(args) == 1
        assert "not found" in capsys.readouterr().out

    def test_import_rejects_non_object(self, migrate, tmp_path):
        export = tmp_path / "export.json"
        export.write_text("[]", encoding="utf-8")
        args = migrate.build_parser().parse_args(["import-legacy", str(export)])

        assert args.func(args) == 1

    def test_import(self, migrate, tmp_path, capsys):
        export = tmp_path / "export.json"
        export.write_text('{"brandGuardWorkspaces": [{"id": "ws_legacy", "name": "Old"}]}', encoding="utf-8")
        args = migrate.build_parser().parse_args(["import-legacy", str(export)])

        assert args.func(args) == 0
        assert "Imported 1 workspaces" in capsys.readouterr().out
