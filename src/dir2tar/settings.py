"""Settings file loading.

The settings file is TOML. It is validated against pydantic models and then
converted into the immutable Target and Filter objects a run works with. Root
paths are canonicalized here, before any traversal starts.

Example settings file::

    archive_path = "/backup/backup-%Y-%m-%d.tar"

    [[targets]]
    name = "docs"
    paths = ["/data/docs"]

    [[filters]]
    name = "skip-build"
    scopes = ["docs"]
    triggers = ["build"]
    conditions = ["!.keep"]
"""

import logging
import tomllib
from datetime import datetime, timezone
from pathlib import Path, PurePath
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from dir2tar.archive.tar_archive import Compression
from dir2tar.exceptions import ConfigMissingError, SettingsError
from dir2tar.models import Condition, Filter, FilterKind, Target
from dir2tar.types import PathType

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path("settings.toml")


class TargetSettings(BaseModel):
    """A ``[[targets]]`` table."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    paths: List[str] = Field(min_length=1)

    @field_validator("name")
    @classmethod
    def _name_is_single_component(cls, value: str) -> str:
        if "/" in value or "\\" in value or value in (".", ".."):
            raise ValueError("target name must be a single path component")
        return value


class FilterSettings(BaseModel):
    """A ``[[filters]]`` table. ``targets`` is accepted as an alias of ``triggers``."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    execute: FilterKind = FilterKind.EXCLUDE
    scopes: List[str] = Field(min_length=1)
    triggers: List[str] = Field(validation_alias="targets", default_factory=list)
    conditions: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _accept_both_trigger_keys(cls, data: object) -> object:
        if isinstance(data, dict) and "triggers" in data:
            if "targets" in data:
                raise ValueError("use either 'triggers' or 'targets', not both")
            data = dict(data)
            data["targets"] = data.pop("triggers")
        return data

    @field_validator("triggers")
    @classmethod
    def _triggers_are_relative(cls, value: List[str]) -> List[str]:
        for trigger in value:
            if not trigger or PurePath(trigger).is_absolute():
                raise ValueError(f"trigger {trigger!r} must be a non-empty relative path")
        return value


class SettingsFile(BaseModel):
    """Top-level structure of the settings file."""

    model_config = ConfigDict(extra="forbid")

    archive_path: str = Field(min_length=1)
    compression: Compression = Compression.NONE
    follow_symlinks: bool = True
    progress_interval: int = Field(default=1000, ge=0)
    targets: List[TargetSettings] = Field(default_factory=list)
    filters: List[FilterSettings] = Field(default_factory=list)

    @field_validator("targets")
    @classmethod
    def _target_names_unique(cls, value: List[TargetSettings]) -> List[TargetSettings]:
        seen = set()
        for target in value:
            if target.name in seen:
                raise ValueError(f"duplicate target name '{target.name}'")
            seen.add(target.name)
        return value


class Settings:
    """Validated settings for one run.

    Attributes:
        archive_path (str): Output path pattern, possibly containing strftime directives.
        compression (Compression): Compression applied to the archive.
        follow_symlinks (bool): Whether symbolic links are followed.
        progress_interval (int): Completed files between two progress log lines.
        targets (Tuple[Target, ...]): Targets in declaration order, with canonical roots.
        filters (Tuple[Filter, ...]): Filters in declaration order.
    """

    def __init__(
        self,
        archive_path: str,
        targets: Tuple[Target, ...] = (),
        filters: Tuple[Filter, ...] = (),
        compression: Compression = Compression.NONE,
        follow_symlinks: bool = True,
        progress_interval: int = 1000,
    ) -> None:
        self.archive_path = archive_path
        self.targets = targets
        self.filters = filters
        self.compression = compression
        self.follow_symlinks = follow_symlinks
        self.progress_interval = progress_interval

    @classmethod
    def from_file(cls, settings_file: SettingsFile, base_dir: Optional[Path] = None) -> "Settings":
        """Convert a validated settings document into run settings.

        Args:
            settings_file: The validated document.
            base_dir: Directory relative root paths are resolved against. Defaults
                to the current working directory.
        """
        base = base_dir if base_dir is not None else Path.cwd()
        targets = tuple(
            Target(target.name, tuple(canonicalize(path, base) for path in target.paths))
            for target in settings_file.targets
        )
        filters = tuple(
            Filter(
                name=entry.name,
                scopes=frozenset(entry.scopes),
                triggers=tuple(PurePath(trigger) for trigger in entry.triggers),
                conditions=tuple(Condition.parse(condition) for condition in entry.conditions),
                kind=entry.execute,
            )
            for entry in settings_file.filters
        )
        return cls(
            archive_path=settings_file.archive_path,
            targets=targets,
            filters=filters,
            compression=settings_file.compression,
            follow_symlinks=settings_file.follow_symlinks,
            progress_interval=settings_file.progress_interval,
        )

    def resolve_archive_path(self, now: Optional[datetime] = None) -> Path:
        """Expand strftime directives in the archive path with the current UTC time.

        Example:
            >>> settings = Settings("backup-%Y%m%d.tar")
            >>> settings.resolve_archive_path(datetime(2024, 5, 17, tzinfo=timezone.utc))
            PosixPath('backup-20240517.tar')
        """
        moment = now if now is not None else datetime.now(timezone.utc)
        return Path(moment.strftime(self.archive_path)).expanduser()

    def __repr__(self) -> str:
        return (
            f"Settings(archive_path={self.archive_path!r}, compression={self.compression.value!r}, "
            f"follow_symlinks={self.follow_symlinks!r}, targets={self.targets!r}, filters={self.filters!r})"
        )


def canonicalize(path: str, base: Path) -> Path:
    """Make a root path absolute and canonical: user expanded, symlinks resolved, no ``.`` or ``..``.

    Roots that do not exist are still made absolute; the walker reports them.

    Example:
        >>> canonicalize("/", Path("/tmp"))
        PosixPath('/')
    """
    expanded = Path(path).expanduser()
    if not expanded.is_absolute():
        expanded = base / expanded
    return expanded.resolve()


def load_settings(settings_path: PathType = DEFAULT_SETTINGS_PATH) -> Settings:
    """Load, validate and convert the settings file.

    Relative root paths are resolved against the directory containing the
    settings file.

    Args:
        settings_path: Location of the TOML settings file.

    Returns:
        The run settings.

    Raises:
        ConfigMissingError: If the file does not exist. An empty file is created first.
        SettingsError: If the file cannot be read, is not valid TOML, or fails validation.
    """
    path = Path(settings_path)
    logger.info("Loading settings...")

    if not path.exists():
        logger.warning("Settings file \"%s\" does not exist! Creating it and exiting...", path)
        try:
            path.touch()
        except OSError as e:
            logger.error("Could not create \"%s\": %s", path, e.strerror or e)
        raise ConfigMissingError(path)

    try:
        with open(path, "rb") as f:
            document = tomllib.load(f)
    except OSError as e:
        raise SettingsError(f"Cannot read settings file \"{path}\": {e.strerror or e}") from e
    except tomllib.TOMLDecodeError as e:
        raise SettingsError(f"Invalid TOML in \"{path}\": {e}") from e

    try:
        settings_file = SettingsFile.model_validate(document)
    except ValidationError as e:
        raise SettingsError(f"Invalid settings in \"{path}\":\n{e}") from e

    settings = Settings.from_file(settings_file, base_dir=path.resolve().parent)
    logger.debug("Settings: %r", settings)
    logger.info("Settings loaded.")
    return settings
