"""
Unit tests for the ddl-import command line.
"""

import io
import json

import pytest

from ddl_import.cli import EXIT_ERROR, EXIT_OK, EXIT_VALIDATION_FAILED, main

VALID_SQL = (
    "CREATE TABLE users (id INT PRIMARY KEY, email TEXT);\n"
    "CREATE TABLE posts (id INT PRIMARY KEY, user_id INT REFERENCES users(id));\n"
)

FIXABLE_SQL = "CREATE TABLE t (\n  status VARCHAR(20) DEFAULT 'a': :character varying\n);\n"


@pytest.fixture
def sql_file(tmp_path):
    def _write(content: str, name: str = "schema.sql") -> str:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return str(path)

    return _write


class TestValidateCommand:
    """Test `ddl-import validate`."""

    def test_valid_json(self, sql_file, capsys):
        code = main(["validate", sql_file(VALID_SQL), "--json"])
        data = json.loads(capsys.readouterr().out)

        assert code == EXIT_OK
        assert data["isValid"] is True
        assert data["tableCount"] == 2

    def test_invalid_exit_code(self, sql_file, capsys):
        code = main(["validate", sql_file(FIXABLE_SQL), "--json"])
        data = json.loads(capsys.readouterr().out)

        assert code == EXIT_VALIDATION_FAILED
        assert data["errors"][0]["autoFixable"] is True

    def test_apply_fix_to_stdout(self, sql_file, capsys):
        code = main(["validate", sql_file(FIXABLE_SQL), "--apply-fix"])

        assert code == EXIT_OK
        assert "'a'::character varying" in capsys.readouterr().out

    def test_apply_fix_to_file(self, sql_file, tmp_path):
        output = tmp_path / "fixed.sql"
        code = main(["validate", sql_file(FIXABLE_SQL), "--apply-fix", "--output", str(output)])

        assert code == EXIT_VALIDATION_FAILED
        assert "'a'::character varying" in output.read_text(encoding="utf-8")

    def test_rich_output(self, sql_file, capsys):
        code = main(["validate", sql_file(FIXABLE_SQL)])

        assert code == EXIT_VALIDATION_FAILED
        assert "Invalid" in capsys.readouterr().out

    def test_stdin(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO(VALID_SQL))
        code = main(["validate", "-", "--json"])

        assert code == EXIT_OK
        assert json.loads(capsys.readouterr().out)["isValid"] is True


class TestImportCommand:
    """Test `ddl-import import`."""

    def test_json_output(self, sql_file, capsys):
        code = main(["import", sql_file(VALID_SQL), "--json"])
        data = json.loads(capsys.readouterr().out)

        assert code == EXIT_OK
        assert [t["name"] for t in data["tables"]] == ["users", "posts"]
        assert data["relationships"][0]["sourceColumn"] == "user_id"
        assert data["relationships"][0]["targetTableId"] == data["tables"][0]["id"]
        assert "warnings" not in data

    def test_rich_output(self, sql_file, capsys):
        code = main(["import", sql_file(VALID_SQL), "--dialect", "postgres"])
        out = capsys.readouterr().out

        assert code == EXIT_OK
        assert "users" in out
        assert "posts.user_id" in out

    def test_config_file(self, sql_file, tmp_path, capsys):
        config = tmp_path / "import.yml"
        config.write_text("default_schemas:\n  postgresql: app\n", encoding="utf-8")
        code = main(["import", sql_file(VALID_SQL), "--json", "--config", str(config)])

        assert code == EXIT_OK
        assert json.loads(capsys.readouterr().out)["tables"][0]["schema"] == "app"

    def test_missing_file(self, tmp_path):
        assert main(["import", str(tmp_path / "missing.sql")]) == EXIT_ERROR

    def test_unknown_dialect(self, sql_file):
        assert main(["import", sql_file(VALID_SQL), "--dialect", "cobol"]) == EXIT_ERROR

    def test_bad_config(self, sql_file, tmp_path):
        config = tmp_path / "bad.yml"
        config.write_text("- not\n- a mapping\n", encoding="utf-8")
        assert main(["import", sql_file(VALID_SQL), "--config", str(config)]) == EXIT_ERROR

    def test_command_required(self):
        with pytest.raises(SystemExit):
            main([])
