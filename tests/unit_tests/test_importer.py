"""
End-to-end tests for the import pipeline.
"""

import sys

import pytest

from ddl_import.configuration import ImportConfig
from ddl_import.models import Cardinality
from ddl_import.utils.constants import DatabaseType
from ddl_import.utils.exceptions import DDLImportException, ErrorCode
from ddl_import.utils.sql_import import dispatcher, importer
from ddl_import.utils.sql_import.importer import import_sql, import_sql_sync, load_sql_parser, resolve_dialect


def _relationship_shape(result):
    return [
        (
            fk.source_table,
            fk.source_column,
            fk.target_table,
            fk.target_column,
            fk.source_cardinality,
            fk.target_cardinality,
        )
        for fk in result.relationships
    ]


def _parse_failures(result):
    return [w for w in result.warnings if w.startswith("Failed to parse")]


class TestBasicImport:
    """Test table and relationship extraction."""

    def test_two_tables_one_reference(self):
        sql = (
            "CREATE TABLE a (id INT PRIMARY KEY);\n"
            "CREATE TABLE b (id INT PRIMARY KEY, a_id INT REFERENCES a(id));\n"
        )
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)

        assert [t.name for t in result.tables] == ["a", "b"]
        assert len(result.relationships) == 1
        fk = result.relationships[0]
        table_a, table_b = result.tables
        assert (fk.source_table_id, fk.source_column) == (table_b.id, "a_id")
        assert (fk.target_table_id, fk.target_column) == (table_a.id, "id")
        assert (fk.source_cardinality, fk.target_cardinality) == (Cardinality.MANY, Cardinality.ONE)
        assert result.warnings == []

    def test_columns_and_types(self):
        sql = (
            "CREATE TABLE accounts (\n"
            "  id SERIAL PRIMARY KEY,\n"
            "  email VARCHAR(255) NOT NULL UNIQUE,\n"
            "  balance NUMERIC(12, 2) DEFAULT 0,\n"
            "  created_at TIMESTAMP WITH TIME ZONE\n"
            ");"
        )
        table = import_sql_sync(sql, DatabaseType.POSTGRESQL).tables[0]
        columns = {c.name: c for c in table.columns}

        assert table.schema_name == "public"
        assert [c.name for c in table.columns] == ["id", "email", "balance", "created_at"]
        assert (columns["id"].type, columns["id"].increment, columns["id"].primary_key) == ("integer", True, True)
        assert columns["id"].nullable is False
        assert (columns["email"].type, columns["email"].type_args.length) == ("varchar", 255)
        assert columns["email"].nullable is False
        assert columns["email"].unique is True
        assert columns["balance"].type == "decimal"
        assert (columns["balance"].type_args.precision, columns["balance"].type_args.scale) == (12, 2)
        assert columns["balance"].default == "0"
        assert columns["created_at"].type == "timestamptz"
        assert columns["created_at"].nullable is True

    def test_ids_unique_and_order_follows_declaration(self):
        sql = "".join(f"CREATE TABLE t{i} (id INT);\n" for i in range(5))
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)

        assert [t.order for t in result.tables] == [0, 1, 2, 3, 4]
        assert len({t.id for t in result.tables}) == 5

    def test_forward_reference_resolved(self):
        sql = (
            "CREATE TABLE orders (id INT PRIMARY KEY, user_id INT REFERENCES users(id));\n"
            "CREATE TABLE users (id INT PRIMARY KEY);\n"
        )
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)
        assert _relationship_shape(result) == [("orders", "user_id", "users", "id", Cardinality.MANY, Cardinality.ONE)]

    def test_dangling_reference_dropped(self):
        sql = "CREATE TABLE orders (id INT PRIMARY KEY, customer_id INT REFERENCES customers(id));"
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)

        assert len(result.tables) == 1
        assert result.relationships == []

    def test_reference_without_column_uses_primary_key(self):
        sql = "CREATE TABLE users (uid INT PRIMARY KEY);\nCREATE TABLE posts (author INT REFERENCES users);"
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)
        assert result.relationships[0].target_column == "uid"

    def test_empty_document(self):
        result = import_sql_sync("", DatabaseType.POSTGRESQL)
        assert result.to_dict() == {"tables": [], "relationships": []}


class TestForeignKeyEquivalence:
    """Inline, table-level and ALTER TABLE foreign keys produce the same relationship."""

    USERS = "CREATE TABLE users (id INT PRIMARY KEY);\n"

    @pytest.mark.parametrize(
        "orders_sql",
        [
            "CREATE TABLE orders (id INT PRIMARY KEY, user_id INT REFERENCES users(id));",
            "CREATE TABLE orders (id INT PRIMARY KEY, user_id INT, FOREIGN KEY (user_id) REFERENCES users(id));",
            "CREATE TABLE orders (id INT PRIMARY KEY, user_id INT, "
            "CONSTRAINT fk_user FOREIGN KEY (user_id) REFERENCES users (id));",
            "CREATE TABLE orders (id INT PRIMARY KEY, user_id INT);\n"
            "ALTER TABLE orders ADD CONSTRAINT fk_user FOREIGN KEY (user_id) REFERENCES users(id);",
        ],
    )
    def test_same_relationship(self, orders_sql):
        result = import_sql_sync(self.USERS + orders_sql, DatabaseType.POSTGRESQL)

        assert _relationship_shape(result) == [("orders", "user_id", "users", "id", Cardinality.MANY, Cardinality.ONE)]
        assert [c.name for c in result.tables[1].columns] == ["id", "user_id"]

    def test_constraint_name_kept(self):
        sql = self.USERS + (
            "CREATE TABLE orders (id INT PRIMARY KEY, user_id INT);\n"
            "ALTER TABLE orders ADD CONSTRAINT fk_user FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE;"
        )
        fk = import_sql_sync(sql, DatabaseType.POSTGRESQL).relationships[0]

        assert fk.name == "fk_user"
        assert fk.delete_action == "CASCADE"

    def test_inline_default_name(self):
        sql = self.USERS + "CREATE TABLE orders (id INT PRIMARY KEY, user_id INT REFERENCES users(id));"
        assert import_sql_sync(sql, DatabaseType.POSTGRESQL).relationships[0].name == "orders_user_id_fkey"

    def test_duplicate_declarations_kept(self):
        sql = self.USERS + (
            "CREATE TABLE orders (id INT PRIMARY KEY, user_id INT REFERENCES users(id));\n"
            "ALTER TABLE orders ADD FOREIGN KEY (user_id) REFERENCES users(id);"
        )
        assert len(import_sql_sync(sql, DatabaseType.POSTGRESQL).relationships) == 2


class TestResilience:
    """A broken or unsupported statement costs only itself."""

    def test_malformed_statement(self):
        sql = (
            "CREATE TABLE a (id INT PRIMARY KEY);\n"
            "CREATE TABLE broken (id INT PRIMARY KEY name TEXT, a_id INT REFERENCES a(id));\n"
            "CREATE TABLE c (id INT PRIMARY KEY, a_id INT REFERENCES a(id));\n"
        )
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)

        assert [t.name for t in result.tables] == ["a", "broken", "c"]
        assert _relationship_shape(result) == [
            ("broken", "a_id", "a", "id", Cardinality.MANY, Cardinality.ONE),
            ("c", "a_id", "a", "id", Cardinality.MANY, Cardinality.ONE),
        ]
        failures = _parse_failures(result)
        assert len(failures) == 1
        assert failures[0].startswith("Failed to parse table statement: CREATE TABLE broken")

    def test_interleaved_routines_and_policies(self):
        sql = (
            'CREATE EXTENSION IF NOT EXISTS "uuid-ossp";\n'
            "CREATE TABLE users (id UUID PRIMARY KEY, email TEXT UNIQUE NOT NULL);\n"
            "CREATE OR REPLACE FUNCTION set_updated_at() RETURNS trigger AS $$\n"
            "BEGIN\n"
            "  NEW.updated_at = now();\n"
            "  RETURN NEW;\n"
            "END;\n"
            "$$ LANGUAGE plpgsql;\n"
            "CREATE TABLE posts (\n"
            "  id SERIAL PRIMARY KEY,\n"
            "  user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,\n"
            "  updated_at TIMESTAMPTZ\n"
            ");\n"
            "CREATE TRIGGER posts_updated BEFORE UPDATE ON posts FOR EACH ROW EXECUTE FUNCTION set_updated_at();\n"
            "ALTER TABLE posts ENABLE ROW LEVEL SECURITY;\n"
            "CREATE POLICY posts_owner ON posts USING (user_id = current_user_id());\n"
            "CREATE TABLE tags (id INT PRIMARY KEY);\n"
        )
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)

        assert [t.name for t in result.tables] == ["users", "posts", "tags"]
        assert len(result.relationships) == 1
        assert result.relationships[0].delete_action == "CASCADE"
        assert _parse_failures(result) == []
        assert "Function definitions are not supported and will be skipped" in result.warnings
        assert "Trigger definitions are not supported and will be skipped" in result.warnings

    def test_skipped_category_warned_once(self):
        sql = (
            "CREATE FUNCTION one() RETURNS INT AS $$ SELECT 1 $$ LANGUAGE sql;\n"
            "CREATE FUNCTION two() RETURNS INT AS $$ SELECT 2 $$ LANGUAGE sql;\n"
            "CREATE TABLE t (id INT);\n"
        )
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)

        assert len(result.tables) == 1
        assert result.warnings.count("Function definitions are not supported and will be skipped") == 1

    def test_fallback_recovers_foreign_key(self):
        sql = (
            "CREATE TABLE users (id INT PRIMARY KEY);\n"
            "CREATE TABLE orders (id INT PRIMARY KEY, user_id INT);\n"
            "ALTER TABLE orders ADD CONSTRAINT fk_user FOREIGN KEY (user_id) REFERENCES users(id) "
            "ON DELETE CASCADE EXTRA JUNK;\n"
        )
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)

        assert _relationship_shape(result) == [("orders", "user_id", "users", "id", Cardinality.MANY, Cardinality.ONE)]
        assert result.relationships[0].delete_action == "CASCADE"
        failures = _parse_failures(result)
        assert len(failures) == 1
        assert failures[0].startswith("Failed to parse alter statement: ALTER TABLE orders")

    def test_fallback_can_be_disabled(self):
        sql = (
            "CREATE TABLE users (id INT PRIMARY KEY);\n"
            "CREATE TABLE orders (id INT PRIMARY KEY, user_id INT);\n"
            "ALTER TABLE orders ADD CONSTRAINT fk_user FOREIGN KEY (user_id) REFERENCES users(id) EXTRA JUNK;\n"
        )
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL, ImportConfig(enable_fallback_extraction=False))

        assert result.relationships == []
        assert len(_parse_failures(result)) == 1

    def test_excerpt_length_configurable(self):
        sql = "CREATE TABLE broken (id INT PRIMARY KEY name TEXT);"
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL, ImportConfig(excerpt_length=12))
        assert result.warnings == ["Failed to parse table statement: CREATE TABLE..."]

    def test_unparsable_table_still_links(self):
        sql = (
            "CREATE TABLE a (id INT PRIMARY KEY);\n"
            "CREATE TABLE b (id INT PRIMARY KEY, a_id INT REFERENCES a(id), weird_col INT @@@ garbage);\n"
            "CREATE TABLE c (id INT PRIMARY KEY, b_id INT REFERENCES b(id));\n"
        )
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)

        assert [t.name for t in result.tables] == ["a", "b", "c"]
        assert _relationship_shape(result) == [
            ("b", "a_id", "a", "id", Cardinality.MANY, Cardinality.ONE),
            ("c", "b_id", "b", "id", Cardinality.MANY, Cardinality.ONE),
        ]
        table_b = result.tables[1]
        assert [c.name for c in table_b.columns] == ["id", "a_id", "weird_col"]
        assert (table_b.columns[0].type, table_b.columns[0].primary_key) == ("integer", True)
        assert result.relationships[1].target_table_id == table_b.id
        failures = _parse_failures(result)
        assert len(failures) == 1
        assert failures[0].startswith("Failed to parse table statement: CREATE TABLE b")

    def test_unparsable_duplicate_table_ignored(self):
        sql = (
            "CREATE TABLE a (id INT PRIMARY KEY);\n"
            "CREATE TABLE b (id INT PRIMARY KEY);\n"
            "CREATE TABLE b (id INT PRIMARY KEY, a_id INT REFERENCES a(id), x INT @@@ garbage);\n"
        )
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)

        assert [t.name for t in result.tables] == ["a", "b"]
        assert [c.name for c in result.tables[1].columns] == ["id"]
        assert result.relationships == []
        assert len(_parse_failures(result)) == 1

    def test_unparsable_table_not_recovered_when_disabled(self):
        sql = (
            "CREATE TABLE a (id INT PRIMARY KEY);\n"
            "CREATE TABLE b (id INT PRIMARY KEY, a_id INT REFERENCES a(id), weird_col INT @@@ garbage);\n"
        )
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL, ImportConfig(enable_fallback_extraction=False))

        assert [t.name for t in result.tables] == ["a"]
        assert result.relationships == []

    def test_failed_statement_quoted_as_written(self, monkeypatch):
        # Every CREATE TABLE goes through recovery; the document itself parses in one pass
        monkeypatch.setattr(dispatcher, "apply_create_table", lambda expression, state: None)
        captured = []
        original = dispatcher.extract_foreign_keys_fallback

        def _capture(sql, kind):
            captured.append(sql)
            return original(sql, kind)

        monkeypatch.setattr(dispatcher, "extract_foreign_keys_fallback", _capture)
        sql = (
            "create table users (id int4 primary key);\n"
            "create table orders (\n"
            "  id int4 primary key,\n"
            "  user_id int4 references users(id)\n"
            ");\n"
        )
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)

        assert result.warnings == [
            "Failed to parse table statement: create table users (id int4 primary key)",
            "Failed to parse table statement: create table orders ( id int4 primary key, user_id...",
        ]
        assert captured[1] == "create table orders (\n  id int4 primary key,\n  user_id int4 references users(id)\n)"
        assert [t.name for t in result.tables] == ["users", "orders"]
        assert _relationship_shape(result) == [("orders", "user_id", "users", "id", Cardinality.MANY, Cardinality.ONE)]


class TestEnums:
    """Test enum declarations and enum-typed columns."""

    def test_enum_status(self):
        sql = (
            "CREATE TYPE status AS ENUM ('active', 'inactive', 'pending');\n"
            "CREATE TABLE users (id SERIAL PRIMARY KEY, status status NOT NULL DEFAULT 'active');\n"
        )
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)

        assert [(e.name, e.values) for e in result.enums] == [("status", ["active", "inactive", "pending"])]
        status = result.tables[0].find_column("status")
        assert status.type == "status"
        assert status.nullable is False
        assert status.default == "'active'"
        assert result.to_dict()["enums"] == [{"name": "status", "values": ["active", "inactive", "pending"]}]

    def test_enum_declared_after_table(self):
        sql = (
            "CREATE TABLE tickets (id INT PRIMARY KEY, priority priority_level);\n"
            "CREATE TYPE priority_level AS ENUM ('low', 'high');\n"
        )
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)
        assert result.tables[0].find_column("priority").type == "priority_level"

    def test_non_enum_type_skipped(self):
        sql = "CREATE TYPE pair AS (a INT, b INT);\nCREATE TABLE t (id INT);"
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)

        assert result.enums == []
        assert "Non-enum type definitions are not supported and will be skipped" in result.warnings
        assert "enums" not in result.to_dict()


class TestTableDetails:
    """Test indexes, comments, ALTER actions and duplicate tables."""

    def test_create_index(self):
        sql = (
            "CREATE TABLE users (id INT PRIMARY KEY, email TEXT, name TEXT);\n"
            "CREATE UNIQUE INDEX idx_users_email ON users (email);\n"
            "CREATE INDEX ON users (name);\n"
            "CREATE INDEX idx_missing ON ghosts (x);\n"
        )
        table = import_sql_sync(sql, DatabaseType.POSTGRESQL).tables[0]
        indexes = {i.name: i for i in table.indexes}

        assert indexes["idx_users_email"].unique is True
        assert indexes["idx_users_email"].columns == ["email"]
        assert indexes["idx_users_name"].unique is False

    def test_composite_primary_key_and_unique(self):
        sql = (
            "CREATE TABLE memberships (\n"
            "  user_id INT,\n"
            "  group_id INT,\n"
            "  slug TEXT,\n"
            "  PRIMARY KEY (user_id, group_id),\n"
            "  UNIQUE (slug)\n"
            ");"
        )
        table = import_sql_sync(sql, DatabaseType.POSTGRESQL).tables[0]
        columns = {c.name: c for c in table.columns}

        assert [c.name for c in table.primary_key_columns] == ["user_id", "group_id"]
        assert columns["user_id"].nullable is False
        assert columns["user_id"].unique is False
        assert columns["slug"].unique is True
        assert table.indexes[0].columns == ["slug"]

    def test_comment_on(self):
        sql = (
            "CREATE TABLE users (id INT PRIMARY KEY, email TEXT);\n"
            "COMMENT ON TABLE users IS 'Registered users';\n"
            "COMMENT ON COLUMN public.users.email IS 'Login e-mail';\n"
        )
        table = import_sql_sync(sql, DatabaseType.POSTGRESQL).tables[0]

        assert table.comment == "Registered users"
        assert table.find_column("email").comment == "Login e-mail"

    def test_alter_add_and_change_column(self):
        sql = (
            "CREATE TABLE t (id INT PRIMARY KEY, name VARCHAR(10));\n"
            "ALTER TABLE t ADD COLUMN note VARCHAR(20) NOT NULL;\n"
            "ALTER TABLE t ALTER COLUMN name TYPE TEXT;\n"
        )
        table = import_sql_sync(sql, DatabaseType.POSTGRESQL).tables[0]

        assert [c.name for c in table.columns] == ["id", "name", "note"]
        assert table.find_column("note").nullable is False
        assert table.find_column("name").type == "text"
        assert table.find_column("name").type_args is None

    def test_alter_add_primary_key(self):
        sql = (
            "CREATE TABLE public.users (id integer NOT NULL, email character varying(255));\n"
            "ALTER TABLE ONLY public.users ADD CONSTRAINT users_pkey PRIMARY KEY (id);\n"
            "CREATE TABLE public.posts (id integer NOT NULL, user_id integer);\n"
            "ALTER TABLE ONLY public.posts ADD CONSTRAINT posts_user_id_fkey "
            "FOREIGN KEY (user_id) REFERENCES public.users(id);\n"
        )
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)

        assert result.tables[0].find_column("id").primary_key is True
        assert _relationship_shape(result) == [("posts", "user_id", "users", "id", Cardinality.MANY, Cardinality.ONE)]

    def test_duplicate_table_keeps_first(self):
        sql = "CREATE TABLE t (id INT);\nCREATE TABLE t (id INT, extra TEXT);\n"
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)

        assert len(result.tables) == 1
        assert [c.name for c in result.tables[0].columns] == ["id"]
        assert result.warnings == ["Duplicate table definition for public.t; keeping the first declaration"]

    def test_array_columns(self):
        sql = "CREATE TABLE docs (id INT PRIMARY KEY, tags TEXT[], scores INTEGER[], labels VARCHAR(20)[]);"
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)
        columns = {c.name: c for c in result.tables[0].columns}

        assert columns["tags"].type == "text[]"
        assert columns["scores"].type == "integer[]"
        assert (columns["labels"].type, columns["labels"].type_args.length) == ("varchar[]", 20)
        assert result.warnings == []

    def test_schema_qualified_tables(self):
        sql = (
            "CREATE TABLE auth.users (id INT PRIMARY KEY);\n"
            "CREATE TABLE app.profiles (user_id INT REFERENCES auth.users(id));\n"
        )
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)

        assert [t.schema_name for t in result.tables] == ["auth", "app"]
        assert result.relationships[0].target_schema == "auth"


class TestViews:
    """Views are registered alongside tables with untyped columns."""

    SQL = (
        "CREATE TABLE users (id INT PRIMARY KEY, email TEXT);\n"
        "CREATE VIEW active_users AS SELECT id, email AS contact FROM users;\n"
        "CREATE OR REPLACE VIEW user_ids (uid) AS SELECT id FROM users;\n"
        "CREATE VIEW everything AS SELECT * FROM users;\n"
    )

    def test_registered_in_order(self):
        result = import_sql_sync(self.SQL, DatabaseType.POSTGRESQL)

        assert [(t.name, t.is_view) for t in result.tables] == [
            ("users", False),
            ("active_users", True),
            ("user_ids", True),
            ("everything", True),
        ]
        assert [t.order for t in result.tables] == [0, 1, 2, 3]
        assert result.warnings == []

    def test_columns(self):
        tables = {t.name: t for t in import_sql_sync(self.SQL, DatabaseType.POSTGRESQL).tables}

        assert [(c.name, c.type) for c in tables["active_users"].columns] == [("id", "text"), ("contact", "text")]
        assert [c.name for c in tables["user_ids"].columns] == ["uid"]
        assert tables["everything"].columns == []
        assert all(c.nullable and not c.primary_key for c in tables["active_users"].columns)

    def test_serialized_flag(self):
        data = import_sql_sync(self.SQL, DatabaseType.POSTGRESQL).to_dict()

        assert data["tables"][0]["isView"] is False
        assert data["tables"][1]["isView"] is True

    def test_name_clash_with_table(self):
        sql = "CREATE TABLE t (id INT);\nCREATE VIEW t AS SELECT 1 AS one;\n"
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)

        assert len(result.tables) == 1
        assert result.tables[0].is_view is False
        assert result.warnings == ["Duplicate table definition for public.t; keeping the first declaration"]

    def test_unconvertible_view_recovered(self, monkeypatch):
        def _fail(expression, state):
            raise ValueError("unexpected view shape")

        monkeypatch.setattr(dispatcher, "apply_create_view", _fail)
        sql = "CREATE TABLE users (id INT);\nCREATE VIEW named (a, b) AS SELECT id, id FROM users;\n"
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL)

        view = result.tables[1]
        assert (view.name, view.is_view) == ("named", True)
        assert [c.name for c in view.columns] == ["a", "b"]
        assert _parse_failures(result) == [
            "Failed to parse view statement: CREATE VIEW named (a, b) AS SELECT id, id FROM use..."
        ]

    def test_views_not_recovered_when_disabled(self, monkeypatch):
        def _fail(expression, state):
            raise ValueError("unexpected view shape")

        monkeypatch.setattr(dispatcher, "apply_create_view", _fail)
        sql = "CREATE TABLE users (id INT);\nCREATE VIEW named AS SELECT id FROM users;\n"
        result = import_sql_sync(sql, DatabaseType.POSTGRESQL, ImportConfig(enable_fallback_extraction=False))

        assert [t.name for t in result.tables] == ["users"]


class TestDialects:
    """Test dialect-specific declarations."""

    def test_mysql(self):
        sql = (
            "CREATE TABLE `users` (\n"
            "  `id` INT NOT NULL AUTO_INCREMENT,\n"
            "  `email` VARCHAR(255) NOT NULL,\n"
            "  `active` TINYINT(1) DEFAULT 1,\n"
            "  PRIMARY KEY (`id`),\n"
            "  UNIQUE KEY `uk_email` (`email`),\n"
            "  KEY `idx_active` (`active`)\n"
            ") ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COMMENT='App users';\n"
            "CREATE TABLE `orders` (\n"
            "  `id` INT NOT NULL AUTO_INCREMENT,\n"
            "  `user_id` INT NOT NULL,\n"
            "  PRIMARY KEY (`id`),\n"
            "  CONSTRAINT `fk_orders_user` FOREIGN KEY (`user_id`) REFERENCES `users` (`id`) ON DELETE CASCADE\n"
            ") ENGINE=InnoDB;\n"
        )
        result = import_sql_sync(sql, DatabaseType.MYSQL)
        users = result.tables[0]
        columns = {c.name: c for c in users.columns}

        assert users.schema_name == ""
        assert users.comment == "App users"
        assert columns["id"].increment is True
        assert columns["id"].primary_key is True
        assert columns["email"].unique is True
        assert {i.name for i in users.indexes} == {"uk_email", "idx_active"}
        fk = result.relationships[0]
        assert (fk.name, fk.delete_action) == ("fk_orders_user", "CASCADE")

    def test_mysql_delimiter_routines(self):
        sql = (
            "CREATE TABLE a (id INT PRIMARY KEY);\n"
            "DELIMITER $$\n"
            "CREATE PROCEDURE p() BEGIN SELECT 1; END$$\n"
            "DELIMITER ;\n"
            "CREATE TABLE b (id INT PRIMARY KEY);\n"
        )
        result = import_sql_sync(sql, DatabaseType.MYSQL)

        assert [t.name for t in result.tables] == ["a", "b"]
        assert result.warnings == ["Stored procedure definitions are not supported and will be skipped"]

    def test_sqlserver(self):
        sql = (
            "CREATE TABLE [dbo].[Customers] (\n"
            "    [Id] INT IDENTITY(1,1) PRIMARY KEY,\n"
            "    [Name] NVARCHAR(100) NOT NULL\n"
            ")\n"
            "GO\n"
        )
        table = import_sql_sync(sql, DatabaseType.SQL_SERVER).tables[0]

        assert (table.schema_name, table.name) == ("dbo", "Customers")
        assert table.find_column("Id").increment is True
        assert table.find_column("Name").type == "nvarchar"
        assert table.find_column("Name").type_args.length == 100

    def test_sqlite(self):
        sql = "CREATE TABLE notes (id INTEGER PRIMARY KEY AUTOINCREMENT, title VARCHAR(50), created DATETIME);"
        table = import_sql_sync(sql, DatabaseType.SQLITE).tables[0]

        assert table.schema_name == "main"
        assert table.find_column("id").increment is True
        assert table.find_column("title").type == "varchar"
        assert table.find_column("created").type == "timestamp"

    def test_dialect_aliases(self):
        result = import_sql_sync("CREATE TABLE t (id INT);", "postgres")
        assert result.tables[0].schema_name == "public"

    def test_default_schema_override(self):
        config = ImportConfig(default_schemas={"postgresql": "app"})
        result = import_sql_sync("CREATE TABLE t (id INT);", DatabaseType.POSTGRESQL, config)
        assert result.tables[0].schema_name == "app"


class TestDialectResolution:
    """Test generic dialect detection."""

    def test_detects_mysql(self):
        sql = "CREATE TABLE t (id INT AUTO_INCREMENT PRIMARY KEY) ENGINE=InnoDB;"
        assert resolve_dialect(sql, DatabaseType.GENERIC, ImportConfig()) == DatabaseType.MYSQL
        assert import_sql_sync(sql, "generic").tables[0].schema_name == ""

    def test_defaults_to_postgresql(self):
        assert resolve_dialect("CREATE TABLE t (id INT);", "generic", ImportConfig()) == DatabaseType.POSTGRESQL

    def test_detection_disabled(self):
        config = ImportConfig(auto_detect_dialect=False)
        assert resolve_dialect("CREATE TABLE t (id INT);", "generic", config) == DatabaseType.GENERIC

    def test_explicit_dialect_not_overridden(self):
        sql = "CREATE TABLE t (id INT) ENGINE=InnoDB;"
        assert resolve_dialect(sql, DatabaseType.POSTGRESQL, ImportConfig()) == DatabaseType.POSTGRESQL


class TestInfrastructureErrors:
    """Only infrastructure failures raise."""

    def test_unknown_dialect(self):
        with pytest.raises(DDLImportException) as exc_info:
            import_sql_sync("CREATE TABLE t (id INT);", "cobol")
        assert exc_info.value.code == ErrorCode.COMMON_VALIDATION_FAILED

    def test_parser_load_failure(self, monkeypatch):
        from ddl_import.utils import sql_import

        monkeypatch.setattr(importer, "_parser_module", None)
        monkeypatch.delattr(sql_import, "dispatcher", raising=False)
        monkeypatch.setitem(sys.modules, "ddl_import.utils.sql_import.dispatcher", None)

        with pytest.raises(DDLImportException) as exc_info:
            load_sql_parser()
        assert exc_info.value.code == ErrorCode.PARSER_LOAD_FAILED

    def test_invalid_parser_result(self, monkeypatch):
        dispatcher = load_sql_parser()
        monkeypatch.setattr(dispatcher.sqlglot, "parse", lambda *args, **kwargs: "not a list")

        with pytest.raises(DDLImportException) as exc_info:
            import_sql_sync("CREATE TABLE t (id INT);", DatabaseType.POSTGRESQL)
        assert exc_info.value.code == ErrorCode.PARSER_INVALID_RESULT

    def test_loader_is_memoized(self):
        assert load_sql_parser() is load_sql_parser()


class TestAsyncImport:
    """Test the async entry point."""

    @pytest.mark.asyncio
    async def test_import_sql(self):
        result = await import_sql("CREATE TABLE a (id INT PRIMARY KEY);", DatabaseType.POSTGRESQL)
        assert [t.name for t in result.tables] == ["a"]

    @pytest.mark.asyncio
    async def test_async_matches_sync(self):
        sql = "CREATE TABLE a (id INT PRIMARY KEY);\nCREATE TABLE b (a_id INT REFERENCES a(id));"
        async_result = await import_sql(sql, "postgresql")
        sync_result = import_sql_sync(sql, "postgresql")

        assert [t.name for t in async_result.tables] == [t.name for t in sync_result.tables]
        assert _relationship_shape(async_result) == _relationship_shape(sync_result)
