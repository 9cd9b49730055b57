# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.05.13
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/config/manager.py

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import ClassVar, Final, Iterator, Optional

import pydantic
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, SecretStr

from opskit.system.exceptions import ConfigError, RegistryError, ValidationError


# ---- Constants ----

GIT_HELPER: Final = "git-helper"
MARIADB_HELPER: Final = "mariadb-helper"

PROFILE_FILE: Final = "config"
SERVERS_FILE: Final = "servers"

DEFAULT_MYSQL_HOST: Final = "localhost"
DEFAULT_MYSQL_PORT: Final = 3306
DEFAULT_MYSQL_USER: Final = "root"

SERVER_FIELDS: Final[tuple[str, ...]] = ("host", "port", "user", "password")

_ASSIGNMENT_RE: Final = re.compile(r"^(?P<key>[A-Za-z0-9_][A-Za-z0-9_.\-\[\]]*)=(?P<value>.*)$")
_ALIAS_RE: Final = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")
_LEGACY_SERVER_RE: Final = re.compile(r"^servers\[(?P<alias>[^\]]+)\]$")
_SHELL_SPECIAL: Final = ("\\", '"', "$", "`")


def config_base_dir() -> Path:
    """Base directory holding one sub-directory per tool.

    Evaluated at call time so tests can redirect it through the environment.
    """
    for var in ("OPSKIT_CONFIG_HOME", "XDG_CONFIG_HOME"):
        value = os.getenv(var)
        if value:
            return Path(value)
    return Path.home() / ".config"


def tool_config_dir(tool_name: str) -> Path:
    return config_base_dir() / tool_name


# ---- NAME="value" files ----

def _unquote(raw: str) -> str:
    """Read one shell word: "double-quoted", 'single-quoted' or bare.

    Inside double quotes a backslash only escapes a backslash, `"`, `$` or a
    backquote, as in a POSIX shell; any other backslash is kept. Nothing is
    expanded.

    Raises:
        ValueError: On an unterminated quote or trailing text
    """
    if raw.startswith('"'):
        chars = []
        index = 1
        while index < len(raw):
            ch = raw[index]
            if ch == "\\" and index + 1 < len(raw) and raw[index + 1] in _SHELL_SPECIAL:
                chars.append(raw[index + 1])
                index += 2
                continue
            if ch == '"':
                if raw[index + 1:].strip():
                    raise ValueError("text after closing quote")
                return "".join(chars)
            chars.append(ch)
            index += 1
        raise ValueError("no closing quotation")

    if raw.startswith("'"):
        end = raw.find("'", 1)
        if end < 0:
            raise ValueError("no closing quotation")
        if raw[end + 1:].strip():
            raise ValueError("text after closing quote")
        return raw[1:end]

    if any(ch.isspace() for ch in raw) or any(ch in raw for ch in "\"'"):
        raise ValueError("value must be quoted")
    return raw


def parse_assignments(text: str, source: str = "<string>") -> list[tuple[str, str, int]]:
    """Parse a NAME="value" file into (key, value, line_number) triples.

    Blank lines, comments and the legacy `declare -A servers` line are skipped.
    Values are unquoted with shell double-quote rules but never evaluated.

    Raises:
        ConfigError: On a line that is not a single assignment
    """
    entries = []
    for line_number, raw_line in enumerate(text.splitlines(), 1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("declare "):
            logger.debug(f"Skipping shell declaration in {source}:{line_number}")
            continue

        match = _ASSIGNMENT_RE.match(line)
        if not match:
            raise ConfigError(f"expected NAME=\"value\", got: {line!r}", source, line_number)

        try:
            value = _unquote(match.group("value"))
        except ValueError as e:
            raise ConfigError(f"bad quoting in value of {match.group('key')}: {e}", source, line_number) from e
        entries.append((match.group("key"), value, line_number))
    return entries


def quote_value(value: str) -> str:
    """Double-quote value so that parse_assignments (and a POSIX shell) read it back verbatim."""
    escaped = "".join(f"\\{ch}" if ch in _SHELL_SPECIAL else ch for ch in value)
    return f'"{escaped}"'


def format_assignments(assignments: dict[str, str], header: Optional[list[str]] = None) -> str:
    lines = [f"# {comment}" for comment in header or []]
    lines.extend(f"{key}={quote_value(value)}" for key, value in assignments.items())
    return "\n".join(lines) + "\n"


def write_private_file(path: Path, text: str) -> None:
    """Replace path with text, readable and writable by the owner only.

    The content goes to a temporary file in the same directory which is then
    renamed over path, so an interrupted write leaves the previous file intact.
    """
    path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _secret_value(value: object) -> str:
    if isinstance(value, SecretStr):
        return value.get_secret_value()
    return str(value)


def _describe_validation_error(error: pydantic.ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(loc) for loc in detail.get("loc", ()))
        parts.append(f"{location}: {detail.get('msg')}" if location else str(detail.get("msg")))
    return "; ".join(parts)


# ---- Profiles ----

class ProfileModel(BaseModel):
    """A credential profile persisted as NAME="value" lines.

    Field aliases are the file keys; empty values fall back to field defaults.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @classmethod
    def file_keys(cls) -> list[str]:
        return [field.alias or name for name, field in cls.model_fields.items()]

    @classmethod
    def from_assignments(cls, data: dict[str, str], source: str = "<string>") -> ProfileModel:
        known = set(cls.file_keys())
        for key in data:
            if key not in known:
                logger.warning(f"Ignoring unknown key {key} in {source}")

        cleaned = {key: value for key, value in data.items() if key in known and value != ""}
        try:
            return cls.model_validate(cleaned)
        except pydantic.ValidationError as e:
            raise ConfigError(_describe_validation_error(e), source) from e

    def to_assignments(self) -> dict[str, str]:
        return {
            field.alias or name: _secret_value(getattr(self, name))
            for name, field in type(self).model_fields.items()
        }

    def updated(self, **changes: object) -> ProfileModel:
        """Return a validated copy with the given fields replaced."""
        data = {name: getattr(self, name) for name in type(self).model_fields}
        data.update({key: value for key, value in changes.items() if value is not None})
        try:
            return type(self).model_validate(data)
        except pydantic.ValidationError as e:
            raise ValidationError(_describe_validation_error(e)) from e


class MariaDBProfile(ProfileModel):
    """Active database connection credentials."""
    password: SecretStr = Field(default=SecretStr(""), alias="MYSQL_PWD")
    user: str = Field(default=DEFAULT_MYSQL_USER, alias="MYSQL_USER")
    host: str = Field(default=DEFAULT_MYSQL_HOST, alias="MYSQL_HOST")
    port: int = Field(default=DEFAULT_MYSQL_PORT, ge=1, le=65535, alias="MYSQL_PORT")

    @property
    def target(self) -> str:
        return f"{self.host}:{self.port}"


class GitHelperProfile(ProfileModel):
    """GitHub credentials and defaults."""
    token: SecretStr = Field(default=SecretStr(""), alias="GITHUB_TOKEN")
    user: str = Field(default="", alias="GITHUB_USER")
    default_owner: str = Field(default="", alias="DEFAULT_REPO_OWNER")

    @property
    def has_token(self) -> bool:
        return bool(self.token.get_secret_value())

    def qualify_repo(self, repo: str) -> str:
        """Expand a bare repository name to owner/repo using the configured owner."""
        if "/" in repo:
            owner, _, name = repo.partition("/")
            if not owner or not name or "/" in name:
                raise ValidationError(f"Invalid repository '{repo}', expected owner/repo")
            return repo
        owner = self.default_owner or self.user
        if not owner:
            raise ValidationError(
                f"Repository '{repo}' has no owner and no DEFAULT_REPO_OWNER or GITHUB_USER is configured"
            )
        return f"{owner}/{repo}"


# ---- Server Registry ----

class ServerEntry(BaseModel):
    """Connection tuple stored under one alias."""
    host: str
    port: int = Field(default=DEFAULT_MYSQL_PORT, ge=1, le=65535)
    user: str
    password: SecretStr = SecretStr("")

    @classmethod
    def build(cls, host: str, port: object, user: str, password: str) -> ServerEntry:
        """Validated entry from command-line strings."""
        try:
            return cls.model_validate(
                {"host": host, "port": port or DEFAULT_MYSQL_PORT, "user": user, "password": password}
            )
        except pydantic.ValidationError as e:
            raise ValidationError(_describe_validation_error(e)) from e

    def to_profile(self) -> MariaDBProfile:
        return MariaDBProfile(host=self.host, port=self.port, user=self.user, password=self.password)


def validate_alias(alias: str) -> str:
    if not _ALIAS_RE.match(alias):
        raise RegistryError(
            f"Invalid server alias '{alias}': use letters, digits, '-' and '_'", alias=alias
        )
    return alias


class ServerRegistry(BaseModel):
    """Alias -> ServerEntry mapping for multi-server switching."""
    servers: dict[str, ServerEntry] = Field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.servers)

    def __contains__(self, alias: object) -> bool:
        return alias in self.servers

    def items(self) -> Iterator[tuple[str, ServerEntry]]:
        """Yield (alias, entry) pairs in alias order."""
        for alias in self.aliases():
            yield alias, self.servers[alias]

    def aliases(self) -> list[str]:
        return sorted(self.servers)

    def get(self, alias: str) -> ServerEntry:
        try:
            return self.servers[alias]
        except KeyError:
            raise RegistryError(f"Server '{alias}' not found", alias=alias) from None

    def add(self, alias: str, entry: ServerEntry, replace: bool = False) -> None:
        validate_alias(alias)
        if alias in self.servers and not replace:
            raise RegistryError(f"Server '{alias}' already exists (use --force to replace it)", alias=alias)
        self.servers[alias] = entry

    def remove(self, alias: str) -> ServerEntry:
        entry = self.get(alias)
        del self.servers[alias]
        return entry

    @classmethod
    def from_assignments(cls, entries: list[tuple[str, str, int]], source: str = "<string>") -> ServerRegistry:
        """Build a registry from `alias.field` lines, migrating legacy `servers[alias]` lines."""
        raw: dict[str, dict[str, str]] = {}
        for key, value, line_number in entries:
            legacy = _LEGACY_SERVER_RE.match(key)
            if legacy:
                host, port, user, password = _split_legacy_tuple(value, source, line_number)
                raw[legacy.group("alias")] = {"host": host, "port": port, "user": user, "password": password}
                logger.debug(f"Migrated legacy server entry '{legacy.group('alias')}' from {source}")
                continue

            alias, sep, field = key.rpartition(".")
            if not sep or field not in SERVER_FIELDS:
                raise ConfigError(f"unexpected key {key}", source, line_number)
            raw.setdefault(alias, {})[field] = value

        registry = cls()
        for alias, fields in raw.items():
            if fields.get("port") == "":
                fields.pop("port")
            try:
                validate_alias(alias)
                registry.servers[alias] = ServerEntry.model_validate(fields)
            except RegistryError as e:
                raise ConfigError(str(e), source) from e
            except pydantic.ValidationError as e:
                raise ConfigError(f"server '{alias}': {_describe_validation_error(e)}", source) from e
        return registry

    def to_assignments(self) -> dict[str, str]:
        assignments = {}
        for alias, entry in self.items():
            for field in SERVER_FIELDS:
                assignments[f"{alias}.{field}"] = _secret_value(getattr(entry, field))
        return assignments


def _split_legacy_tuple(value: str, source: str, line_number: int) -> tuple[str, str, str, str]:
    """Split "host:port:user:password"; the password keeps any further colons."""
    parts = value.split(":", 3)
    if len(parts) != 4:
        raise ConfigError("legacy server entry must be host:port:user:password", source, line_number)
    return parts[0], parts[1], parts[2], parts[3]


# ---- Stores ----

class ConfigStore:
    """Loads and saves the credential profile of one tool."""
    tool_name: ClassVar[str]
    profile_class: ClassVar[type[ProfileModel]]
    header: ClassVar[list[str]] = []

    def __init__(self, config_dir: Optional[Path] = None) -> None:
        self.config_dir = config_dir or tool_config_dir(self.tool_name)

    @property
    def profile_path(self) -> Path:
        return self.config_dir / PROFILE_FILE

    def load(self) -> ProfileModel:
        """Load the profile; a missing file yields the defaults."""
        path = self.profile_path
        if not path.exists():
            logger.debug(f"No profile at {path}, using defaults")
            return self.profile_class()

        entries = parse_assignments(path.read_text(encoding="utf-8"), str(path))
        profile = self.profile_class.from_assignments(
            {key: value for key, value, _ in entries}, str(path)
        )
        logger.debug(f"Loaded profile from {path}")
        return profile

    def save(self, profile: ProfileModel) -> None:
        write_private_file(self.profile_path, format_assignments(profile.to_assignments(), self.header))
        logger.debug(f"Saved profile to {self.profile_path}")


class GitHelperConfigStore(ConfigStore):
    tool_name = GIT_HELPER
    profile_class = GitHelperProfile
    header = ["git-helper configuration"]


class MariaDBConfigStore(ConfigStore):
    tool_name = MARIADB_HELPER
    profile_class = MariaDBProfile
    header = ["mariadb-helper configuration"]
    registry_header: ClassVar[list[str]] = [
        "Server configurations",
        'Format: <alias>.<host|port|user|password>="value"',
    ]

    @property
    def servers_path(self) -> Path:
        return self.config_dir / SERVERS_FILE

    def load_registry(self) -> ServerRegistry:
        path = self.servers_path
        if not path.exists():
            return ServerRegistry()
        entries = parse_assignments(path.read_text(encoding="utf-8"), str(path))
        registry = ServerRegistry.from_assignments(entries, str(path))
        logger.debug(f"Loaded {len(registry)} servers from {path}")
        return registry

    def save_registry(self, registry: ServerRegistry) -> None:
        """Rewrite the whole registry file from the in-memory mapping."""
        write_private_file(self.servers_path, format_assignments(registry.to_assignments(), self.registry_header))
        logger.debug(f"Saved {len(registry)} servers to {self.servers_path}")


# done.
