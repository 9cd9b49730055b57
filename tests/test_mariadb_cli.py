# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.16
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# tests/test_mariadb_cli.py

"""End-to-end mariadb-helper tests through typer's CliRunner with a fake mysql client."""

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from opskit.cli.mariadb_main import app
from opskit.config.manager import MariaDBProfile, ServerEntry, ServerRegistry
from tests.conftest import FakeMySQL

runner = CliRunner()


def invoke(fake, args, **kwargs):
    with patch("subprocess.run", side_effect=fake):
        return runner.invoke(app, args, **kwargs)


class TestDispatch:
    def test_no_arguments_prints_help(self, config_home):
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "Usage" in result.stdout

    @pytest.mark.parametrize("args", [["help"], ["--help"], ["-h"]])
    def test_help_variants(self, config_home, args):
        result = runner.invoke(app, args)
        assert result.exit_code == 0
        assert "Usage" in result.stdout

    def test_unknown_command(self, config_home):
        result = runner.invoke(app, ["frobnicate"])
        assert result.exit_code == 1
        assert "Unknown command: frobnicate" in result.stderr
        assert "Usage" in result.stdout

    def test_unknown_option_is_usage_error(self, config_home):
        result = runner.invoke(app, ["db-list", "--bogus"])
        assert result.exit_code == 2

    @pytest.mark.parametrize("args", [
        ["server-use"],
        ["server-add", "prod", "db1"],
        ["user-create", "app"],
        ["db-delete"],
        ["restore", "app"],
        ["query"],
    ])
    def test_missing_argument_exits_1_without_running_anything(self, config_home, fake_mysql, args):
        result = invoke(fake_mysql, args)
        assert result.exit_code == 1
        assert result.stderr.startswith("Usage: mariadb-helper")
        assert fake_mysql.calls == []


class TestServerRegistryCommands:
    def test_add_two_servers_and_list(self, config_home, fake_mysql, mariadb_store):
        assert invoke(fake_mysql, ["server-add", "prod", "db1.example.com", "3306", "admin", "p1"]).exit_code == 0
        assert invoke(fake_mysql, ["server-add", "staging", "db2.example.com", "3307", "dev", "p2"]).exit_code == 0

        result = invoke(fake_mysql, ["server-list"])

        assert result.exit_code == 0
        assert "prod -> db1.example.com:3306 (admin)" in result.stdout
        assert "staging -> db2.example.com:3307 (dev)" in result.stdout
        registry = mariadb_store.load_registry()
        assert registry.get("prod").password.get_secret_value() == "p1"
        assert registry.get("staging").password.get_secret_value() == "p2"

    def test_numeric_alias_keeps_registry_readable(self, config_home, fake_mysql):
        assert invoke(fake_mysql, ["server-add", "1prod", "db1", "3306", "u", "p"]).exit_code == 0
        assert invoke(fake_mysql, ["server-add", "other", "db2", "3306", "u", "p"]).exit_code == 0

        result = invoke(fake_mysql, ["server-list"])

        assert result.exit_code == 0
        assert "1prod -> db1:3306 (u)" in result.stdout
        assert "other -> db2:3306 (u)" in result.stdout

    def test_add_without_port(self, config_home, fake_mysql, mariadb_store):
        result = invoke(fake_mysql, ["server-add", "prod", "db1", "admin", "pw"])
        assert result.exit_code == 0
        entry = mariadb_store.load_registry().get("prod")
        assert (entry.port, entry.user) == (3306, "admin")

    def test_add_duplicate_requires_force(self, config_home, fake_mysql, mariadb_store):
        invoke(fake_mysql, ["server-add", "prod", "db1", "3306", "admin", "pw"])

        result = invoke(fake_mysql, ["server-add", "prod", "db9", "3306", "admin", "pw"])
        assert result.exit_code == 1
        assert "already exists" in result.stderr
        assert mariadb_store.load_registry().get("prod").host == "db1"

        result = invoke(fake_mysql, ["server-add", "prod", "db9", "3306", "admin", "pw", "--force"])
        assert result.exit_code == 0
        assert mariadb_store.load_registry().get("prod").host == "db9"

    def test_list_empty_registry_warns(self, config_home, fake_mysql):
        result = invoke(fake_mysql, ["server-list"])
        assert result.exit_code == 0
        assert "No servers configured" in result.stdout

    def test_use_unknown_alias_changes_nothing(self, config_home, fake_mysql, mariadb_store):
        mariadb_store.save(MariaDBProfile(host="original", user="me"))
        before = mariadb_store.profile_path.read_bytes()

        result = invoke(fake_mysql, ["server-use", "nope"])

        assert result.exit_code == 1
        assert "Server 'nope' not found" in result.stderr
        assert mariadb_store.profile_path.read_bytes() == before

    def test_use_switches_and_saves_profile(self, config_home, fake_mysql, mariadb_store):
        registry = ServerRegistry()
        registry.add("prod", ServerEntry(host="db1", port=3307, user="admin", password="pw"))
        mariadb_store.save_registry(registry)

        result = invoke(fake_mysql, ["server-use", "prod"])

        assert result.exit_code == 0
        assert "Switched to server 'prod'" in result.stdout
        profile = mariadb_store.load()
        assert (profile.host, profile.port, profile.user) == ("db1", 3307, "admin")
        assert fake_mysql.envs[0]["MYSQL_PWD"] == "pw"

    def test_use_unreachable_server_keeps_old_profile(self, config_home, mariadb_store):
        mariadb_store.save(MariaDBProfile(host="original"))
        registry = ServerRegistry()
        registry.add("prod", ServerEntry(host="db1", user="admin"))
        mariadb_store.save_registry(registry)

        result = invoke(FakeMySQL(reachable=False), ["server-use", "prod"])

        assert result.exit_code == 1
        assert mariadb_store.load().host == "original"

    def test_use_no_check(self, config_home, fake_mysql, mariadb_store):
        registry = ServerRegistry()
        registry.add("prod", ServerEntry(host="db1", user="admin"))
        mariadb_store.save_registry(registry)

        result = invoke(fake_mysql, ["server-use", "prod", "--no-check"])

        assert result.exit_code == 0
        assert fake_mysql.calls == []
        assert mariadb_store.load().host == "db1"

    def test_delete(self, config_home, fake_mysql, mariadb_store):
        invoke(fake_mysql, ["server-add", "prod", "db1", "3306", "admin", "pw"])

        assert invoke(fake_mysql, ["server-delete", "prod"]).exit_code == 0
        assert "prod" not in mariadb_store.load_registry()

        result = invoke(fake_mysql, ["server-delete", "prod"])
        assert result.exit_code == 1
        assert "not found" in result.stderr


class TestServerCommands:
    def test_status_connected(self, config_home):
        fake = FakeMySQL(responses={"VERSION()": "10.11.6-MariaDB\n", "schemata": "5\n", "mysql.user": "3\n"})
        result = invoke(fake, ["status"])

        assert result.exit_code == 0
        assert "Connected to MySQL 10.11.6-MariaDB" in result.stdout
        assert "Databases: 5" in result.stdout
        assert "Users: 3" in result.stdout

    def test_status_unreachable_shows_config(self, config_home):
        result = invoke(FakeMySQL(reachable=False), ["status"])

        assert result.exit_code == 1
        assert "Cannot connect to server" in result.stderr
        assert "Host: localhost" in result.stdout

    def test_check_connection_success(self, config_home, fake_mysql):
        result = invoke(fake_mysql, ["check-connection"])
        assert result.exit_code == 0
        assert "Connection successful" in result.stdout

    def test_check_connection_gives_up_after_five_attempts(self, config_home):
        fake = FakeMySQL(reachable=False)
        with patch("time.sleep") as mock_sleep:
            result = invoke(fake, ["check-connection"])

        assert result.exit_code == 1
        assert sum(1 for cmd in fake.calls if "SELECT 1;" in cmd) == 5
        assert result.stdout.count("Attempt") == 4
        assert "Attempt 1/5 - Waiting 2s..." in result.stdout
        assert "Attempt 5/5" not in result.stdout
        assert mock_sleep.call_count == 4
        mock_sleep.assert_called_with(2.0)
        assert "Connection failed" in result.stderr
        assert "Connection successful" not in result.stdout

    def test_status_without_mysql_client(self, config_home):
        with patch("subprocess.run", side_effect=FileNotFoundError(2, "No such file or directory")):
            result = runner.invoke(app, ["status"])

        assert result.exit_code == 1
        assert "Cannot connect to server" in result.stderr

    def test_commands_fail_when_unreachable(self, config_home):
        fake = FakeMySQL(reachable=False)
        result = invoke(fake, ["db-list"])

        assert result.exit_code == 1
        assert "Cannot connect to server" in result.stderr
        assert fake.statements == []


class TestDatabaseCommands:
    def test_db_list(self, config_home):
        fake = FakeMySQL(responses={"schema_name": "app\t1.50\nwiki\t0.00\n"})
        result = invoke(fake, ["db-list"])

        assert result.exit_code == 0
        assert "app (1.50 MB)" in result.stdout
        assert "wiki (0.00 MB)" in result.stdout

    def test_db_create(self, config_home, fake_mysql):
        result = invoke(fake_mysql, ["db-create", "app"])
        assert result.exit_code == 0
        assert fake_mysql.statements == [
            "CREATE DATABASE IF NOT EXISTS `app` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        ]

    def test_db_create_rejects_bad_charset(self, config_home, fake_mysql):
        result = invoke(fake_mysql, ["db-create", "app", "--charset", "utf8; DROP"])
        assert result.exit_code == 1
        assert fake_mysql.statements == []

    def test_db_delete_cancelled(self, config_home, fake_mysql):
        result = invoke(fake_mysql, ["db-delete", "app"], input="no\n")

        assert result.exit_code == 0
        assert "Cancelled" in result.stdout
        assert not any("DROP" in sql for sql in fake_mysql.statements)

    def test_db_delete_end_of_input_cancels(self, config_home, fake_mysql):
        result = invoke(fake_mysql, ["db-delete", "app"], input="")

        assert result.exit_code == 0
        assert "Cancelled" in result.stdout
        assert fake_mysql.statements == []

    def test_db_delete_needs_exact_yes(self, config_home, fake_mysql):
        result = invoke(fake_mysql, ["db-delete", "app"], input="YES\n")
        assert result.exit_code == 0
        assert fake_mysql.statements == []

    def test_db_delete_confirmed(self, config_home, fake_mysql):
        result = invoke(fake_mysql, ["db-delete", "app"], input="yes\n")
        assert result.exit_code == 0
        assert fake_mysql.statements == ["DROP DATABASE IF EXISTS `app`;"]

    def test_db_delete_force_skips_prompt(self, config_home, fake_mysql):
        result = invoke(fake_mysql, ["db-delete", "app", "--force"])
        assert result.exit_code == 0
        assert fake_mysql.statements == ["DROP DATABASE IF EXISTS `app`;"]

    def test_db_list_tables(self, config_home):
        fake = FakeMySQL(responses={"information_schema.tables": "orders\n", "COUNT(*)": "12\n"})
        result = invoke(fake, ["db-list-tables", "app"])

        assert result.exit_code == 0
        assert "orders (12 rows)" in result.stdout


class TestUserCommands:
    def test_user_create(self, config_home, fake_mysql):
        result = invoke(fake_mysql, ["user-create", "app", "o'pw", "--privileges", "SELECT, INSERT"])

        assert result.exit_code == 0
        assert fake_mysql.statements == [
            "CREATE USER IF NOT EXISTS 'app'@'%' IDENTIFIED BY 'o''pw'; "
            "GRANT SELECT, INSERT ON *.* TO 'app'@'%'; FLUSH PRIVILEGES;"
        ]

    def test_user_create_rejects_bad_privileges(self, config_home, fake_mysql):
        result = invoke(fake_mysql, ["user-create", "app", "pw", "--privileges", "ALL; DROP USER root"])
        assert result.exit_code == 1
        assert "Invalid privilege list" in result.stderr
        assert fake_mysql.statements == []

    def test_user_modify_uses_alter_user(self, config_home, fake_mysql):
        result = invoke(fake_mysql, ["user-modify", "app", "newpw", "--host", "localhost"])
        assert result.exit_code == 0
        assert fake_mysql.statements == ["ALTER USER 'app'@'localhost' IDENTIFIED BY 'newpw'; FLUSH PRIVILEGES;"]

    def test_grant_on_database(self, config_home, fake_mysql):
        result = invoke(fake_mysql, ["grant", "app", "shop", "SELECT"])
        assert result.exit_code == 0
        assert fake_mysql.statements == ["GRANT SELECT ON `shop`.* TO 'app'@'%'; FLUSH PRIVILEGES;"]

    def test_user_list(self, config_home):
        fake = FakeMySQL(responses={"mysql.user": "app\t%\n"})
        result = invoke(fake, ["user-list"])
        assert "app@%" in result.stdout

    def test_failed_statement_reports_tool_output(self, config_home):
        class Failing(FakeMySQL):
            def __call__(self, cmd, **kwargs):
                result = super().__call__(cmd, **kwargs)
                if "DROP USER" in (cmd[-1] if cmd else ""):
                    result.returncode = 1
                    result.stderr = "ERROR 1227 (42000): Access denied"
                return result

        result = invoke(Failing(), ["user-delete", "app"])

        assert result.exit_code == 1
        assert "Access denied" in result.stderr


class TestQueryCommands:
    def test_query_prints_raw_rows(self, config_home):
        fake = FakeMySQL(responses={"FROM users": "1\tAlice\n2\tBob\n"})
        result = invoke(fake, ["query", "SELECT id, name FROM users"])

        assert result.exit_code == 0
        assert result.stdout == "1\tAlice\n2\tBob\n"

    def test_query_json(self, config_home):
        fake = FakeMySQL(responses={"FROM users": "id\tname\n1\tAlice\n2\tBob\n"})
        result = invoke(fake, ["query-json", "SELECT id, name FROM users"])

        assert result.exit_code == 0
        document = json.loads(result.stdout)
        assert document["headers"] == ["id", "name"]
        assert document["data"] == [["1", "Alice"], ["2", "Bob"]]
        query_call = fake.calls[-1]
        assert "-N" not in query_call


class TestBackupCommands:
    def test_restore_missing_file(self, config_home, fake_mysql, tmp_path):
        result = invoke(fake_mysql, ["restore", "app", str(tmp_path / "missing.sql")])
        assert result.exit_code == 1
        assert "Backup file not found" in result.stderr
        assert fake_mysql.statements == []

    def test_backup_writes_named_file(self, config_home, fake_mysql, tmp_path):
        out_dir = tmp_path / "backups"

        def fake_dump(database, dest, compress=True):
            dest.write_bytes(b"dump")

        with patch("opskit.core.mysql_client.MySQLClient.dump", side_effect=fake_dump) as mock_dump:
            result = invoke(fake_mysql, ["backup", "app", "--output", str(out_dir), "--no-compress"])

        assert result.exit_code == 0
        written = list(out_dir.iterdir())
        assert len(written) == 1
        assert written[0].name.startswith("app_") and written[0].name.endswith(".sql")
        assert mock_dump.call_args.kwargs["compress"] is False

    def test_backup_all_skips_excluded(self, config_home, tmp_path):
        fake = FakeMySQL(responses={"schema_name": "app\nscratch\nwiki\n"})
        dumped = []

        def fake_dump(database, dest, compress=True):
            dumped.append(database)
            dest.write_bytes(b"dump")

        with patch("opskit.core.mysql_client.MySQLClient.dump", side_effect=fake_dump):
            result = invoke(fake, ["backup-all", "--output", str(tmp_path), "--exclude", "scratch"])

        assert result.exit_code == 0
        assert dumped == ["app", "wiki"]
        assert "Skipping scratch" in result.stdout


class TestConfigCommand:
    def test_set_and_show(self, config_home, fake_mysql, mariadb_store):
        result = invoke(fake_mysql, ["config", "hunter22", "admin", "db.example.com", "3307"])
        assert result.exit_code == 0
        assert "Configuration saved" in result.stdout

        profile = mariadb_store.load()
        assert (profile.host, profile.port, profile.user) == ("db.example.com", 3307, "admin")

        result = invoke(fake_mysql, ["config"])
        assert "Password: hun***" in result.stdout
        assert "hunter22" not in result.stdout
        assert "Servers configured: 0" in result.stdout

    def test_short_password_is_masked(self, config_home, fake_mysql):
        assert invoke(fake_mysql, ["config", "abc"]).exit_code == 0

        result = invoke(fake_mysql, ["config"])
        assert "Password: a***" in result.stdout
        assert "Password: abc" not in result.stdout
