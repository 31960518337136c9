"""
Unit tests for import configuration loading.
"""

import pytest

from ddl_import.configuration import ImportConfig, load_import_config
from ddl_import.utils.constants import DEFAULT_EXCERPT_LENGTH, DatabaseType
from ddl_import.utils.exceptions import DDLImportException, ErrorCode


class TestImportConfig:
    """Test ImportConfig defaults and validation."""

    def test_defaults(self):
        config = ImportConfig()

        assert config.excerpt_length == DEFAULT_EXCERPT_LENGTH
        assert config.enable_fallback_extraction is True
        assert config.auto_detect_dialect is True
        assert config.default_schemas == {}

    def test_default_schema_fallback(self):
        config = ImportConfig()

        assert config.default_schema(DatabaseType.POSTGRESQL) == "public"
        assert config.default_schema(DatabaseType.SQL_SERVER) == "dbo"
        assert config.default_schema(DatabaseType.SQLITE) == "main"
        assert config.default_schema(DatabaseType.MYSQL) == ""

    def test_default_schema_keys_normalized(self):
        config = ImportConfig(default_schemas={"postgres": "app", "mssql": "sales"})

        assert config.default_schema(DatabaseType.POSTGRESQL) == "app"
        assert config.default_schema(DatabaseType.SQL_SERVER) == "sales"


class TestLoadImportConfig:
    """Test YAML loading."""

    def test_no_path_returns_defaults(self):
        assert load_import_config(None) == ImportConfig()

    def test_top_level_settings(self, tmp_path):
        path = tmp_path / "import.yml"
        path.write_text("excerpt_length: 30\nenable_fallback_extraction: false\n", encoding="utf-8")

        config = load_import_config(str(path))

        assert config.excerpt_length == 30
        assert config.enable_fallback_extraction is False

    def test_nested_import_key(self, tmp_path):
        path = tmp_path / "agent.yml"
        path.write_text(
            "import:\n  warning_consolidation_threshold: 5\n  default_schemas:\n    postgresql: app\n",
            encoding="utf-8",
        )

        config = load_import_config(str(path))

        assert config.warning_consolidation_threshold == 5
        assert config.default_schema(DatabaseType.POSTGRESQL) == "app"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("", encoding="utf-8")
        assert load_import_config(str(path)) == ImportConfig()

    @pytest.mark.parametrize(
        "content",
        [
            "excerpt_length: [unclosed\n",
            "- just\n- a list\n",
            "excerpt_length: 3\n",
            "default_schemas:\n  cobol: x\n",
        ],
        ids=["bad-yaml", "not-a-mapping", "out-of-range", "unknown-dialect"],
    )
    def test_invalid_files(self, tmp_path, content):
        path = tmp_path / "bad.yml"
        path.write_text(content, encoding="utf-8")

        with pytest.raises(DDLImportException) as exc_info:
            load_import_config(str(path))
        assert exc_info.value.code == ErrorCode.COMMON_CONFIG_ERROR

    def test_missing_file(self, tmp_path):
        with pytest.raises(DDLImportException) as exc_info:
            load_import_config(str(tmp_path / "missing.yml"))

        assert exc_info.value.code == ErrorCode.COMMON_CONFIG_ERROR
        assert "not found" in exc_info.value.message
