"""Configuration and directory layout."""

import logging
import os
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dsearch.client import DEFAULT_CONTENT_URL, DEFAULT_MANIFEST_URL, DEFAULT_TIMEOUT
from dsearch.render import RenderFormat

logger = logging.getLogger(__name__)

APP_NAME = "dsearch"


def _xdg_dir(variable: str, fallback: str) -> Path:
    """Resolve an XDG base directory for the application.

    Args:
        variable: XDG environment variable, e.g. ``XDG_DATA_HOME``.
        fallback: Path relative to the home directory used when unset.

    Returns:
        Application directory below the XDG base.
    """
    base = os.environ.get(variable)
    root = Path(base) if base else Path.home() / fallback
    return root / APP_NAME


class Settings(BaseSettings):
    """Application settings, overridable with ``DSEARCH_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="DSEARCH_", env_file=".env", extra="ignore")

    data_dir: Path = Field(default_factory=lambda: _xdg_dir("XDG_DATA_HOME", ".local/share"))
    cache_dir: Path = Field(default_factory=lambda: _xdg_dir("XDG_CACHE_HOME", ".cache"))
    config_dir: Path = Field(default_factory=lambda: _xdg_dir("XDG_CONFIG_HOME", ".config"))
    docsets_dir: Path | None = None

    limit: int = 10
    format: RenderFormat = RenderFormat.TEXT
    max_content_length: int = 2000

    manifest_url: str = DEFAULT_MANIFEST_URL
    content_url: str = DEFAULT_CONTENT_URL
    request_timeout: float = DEFAULT_TIMEOUT

    log_level: str = "WARNING"

    @model_validator(mode="after")
    def _default_docsets_dir(self) -> "Settings":
        """Place docsets under the data directory unless configured.

        Returns:
            The settings instance.
        """
        if self.docsets_dir is None:
            self.docsets_dir = self.data_dir / "docsets"
        return self

    @property
    def docs_dir(self) -> Path:
        """Directory holding one sub-directory per installed DevDocs doc."""
        return self.data_dir / "docs"

    def ensure_dirs(self) -> None:
        """Create all application directories if they don't exist."""
        for directory in (self.docs_dir, self.cache_dir, self.config_dir):
            directory.mkdir(parents=True, exist_ok=True)


def migrate_data_dir(data_dir: Path) -> int:
    """Move docs from the legacy ``docs/docs/<slug>`` layout to ``docs/<slug>``.

    Safe to run repeatedly; docs already present at the new location are
    left alone.

    Args:
        data_dir: Application data directory.

    Returns:
        Number of docs moved.
    """
    docs_dir = data_dir / "docs"
    legacy_dir = docs_dir / "docs"
    # An installed doc that happens to be called "docs" has its index at the top.
    if not legacy_dir.is_dir() or (legacy_dir / "index.json").exists():
        return 0

    migrated = 0
    for old_path in sorted(legacy_dir.iterdir()):
        if not old_path.is_dir():
            continue
        new_path = docs_dir / old_path.name
        if new_path.exists():
            logger.warning("Migration: skipping %s (already exists at new location)", old_path.name)
            continue
        try:
            old_path.rename(new_path)
        except OSError as e:
            logger.warning("Migration: failed to move %s: %s", old_path.name, e)
            continue
        migrated += 1

    if migrated:
        logger.info("Migrated %d doc(s) to %s", migrated, docs_dir)
        try:
            legacy_dir.rmdir()
        except OSError as e:
            logger.warning("Migration: could not remove %s: %s", legacy_dir, e)
    return migrated
