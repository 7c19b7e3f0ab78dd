"""Settings manager for mention-markup settings.yaml files.

Manages three-scope settings system:
- User global (~/.mention-markup/settings.yaml)
- Project (.mention-markup/settings.yaml)
- Local (.mention-markup/settings.local.yaml)
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from .models import MentionObject
from .models import MentionSyntax

logger = logging.getLogger(__name__)

SETTINGS_DIR_NAME = ".mention-markup"

DEFAULT_SYNTAX = MentionSyntax(starting_character="@", missing_text="Unknown")


class SettingsManager:
    """Manages settings across user/project/local scopes."""

    def __init__(self, settings_dir: Path | None = None, user_dir: Path | None = None):
        """Initialize settings manager with standard paths.

        Args:
            settings_dir: Base directory for project/local settings (for testing).
                          If None, uses .mention-markup in current directory.
            user_dir: Base directory for user settings (for testing).
                      If None, uses ~/.mention-markup.
        """
        if settings_dir is None:
            settings_dir = Path(SETTINGS_DIR_NAME)
        if user_dir is None:
            user_dir = Path.home() / SETTINGS_DIR_NAME

        self.user_settings_file = user_dir / "settings.yaml"
        self.project_settings_file = settings_dir / "settings.yaml"
        self.local_settings_file = settings_dir / "settings.local.yaml"

    def _scope_files(self) -> dict[str, Path]:
        return {
            "user": self.user_settings_file,
            "project": self.project_settings_file,
            "local": self.local_settings_file,
        }

    def get_syntaxes(self) -> list[MentionSyntax]:
        """Get mention syntaxes merged from all scopes.

        Syntaxes are keyed by starting character; a higher scope (local >
        project > user) replaces a lower scope's syntax for the same
        character. Falls back to a single "@" syntax when none are configured.

        Returns:
            List of MentionSyntax

        Raises:
            pydantic.ValidationError: If a configured syntax is invalid
        """
        by_character: dict[str, MentionSyntax] = {}

        for scope, path in self._scope_files().items():
            settings = self._read_settings(path)
            if not settings or "syntaxes" not in settings:
                continue
            for entry in settings["syntaxes"] or []:
                syntax = MentionSyntax.model_validate(entry)
                if syntax.starting_character in by_character:
                    logger.debug(f"{scope} settings override syntax '{syntax.starting_character}'")
                by_character[syntax.starting_character] = syntax

        if not by_character:
            return [DEFAULT_SYNTAX]
        return list(by_character.values())

    def add_syntax(self, syntax: MentionSyntax, scope: str = "project") -> None:
        """Add or replace a syntax in one scope.

        Args:
            syntax: Syntax to store
            scope: "user", "project", or "local"
        """
        target_file = self._scope_files().get(scope, self.project_settings_file)
        settings = self._read_settings(target_file) or {}
        entries = [
            entry
            for entry in settings.get("syntaxes") or []
            if entry.get("starting_character") != syntax.starting_character
        ]
        entries.append(syntax.model_dump())
        settings["syntaxes"] = entries
        self._write_settings(target_file, settings)
        logger.info(f"Added {scope} syntax '{syntax.starting_character}'")

    def remove_syntax(self, starting_character: str, scope: str = "project") -> bool:
        """Remove a syntax from one scope.

        Args:
            starting_character: Starting character of the syntax to remove
            scope: "user", "project", or "local"

        Returns:
            True if removed, False if not found
        """
        target_file = self._scope_files().get(scope, self.project_settings_file)
        settings = self._read_settings(target_file)

        if not settings or not settings.get("syntaxes"):
            return False

        entries = [entry for entry in settings["syntaxes"] if entry.get("starting_character") != starting_character]
        if len(entries) == len(settings["syntaxes"]):
            return False

        if entries:
            settings["syntaxes"] = entries
        else:
            # Clean up empty syntaxes section
            del settings["syntaxes"]

        self._write_settings(target_file, settings)
        logger.info(f"Removed {scope} syntax '{starting_character}'")
        return True

    def get_logging_config(self) -> dict[str, Any]:
        """Get the merged ``logging`` section (``path``, ``level``)."""
        return self.get_merged_settings().get("logging") or {}

    def get_merged_settings(self) -> dict[str, Any]:
        """Get merged settings from all scopes.

        Merge order (later overrides earlier):
        1. User settings
        2. Project settings
        3. Local settings

        Returns:
            Merged settings dictionary
        """
        merged: dict[str, Any] = {}
        for path in self._scope_files().values():
            settings = self._read_settings(path)
            if settings:
                merged = self._deep_merge(merged, settings)
        return merged

    def _read_settings(self, path: Path) -> dict[str, Any] | None:
        """Read settings from YAML file.

        Args:
            path: Path to settings file

        Returns:
            Settings dict or None if file doesn't exist
        """
        if not path.exists():
            return None

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
                return data if data else {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to read settings from {path}: {e}")
            return None

    def _write_settings(self, path: Path, settings: dict[str, Any]) -> None:
        """Write settings to YAML file.

        Args:
            path: Path to settings file
            settings: Settings dictionary
        """
        # Ensure directory exists
        path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(path, "w") as f:
                yaml.dump(settings, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            logger.error(f"Failed to write settings to {path}: {e}")
            raise

    def _deep_merge(self, base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries (overlay takes precedence)."""
        result = base.copy()

        for key, value in overlay.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result


def load_mentions(path: Path) -> dict[str, MentionObject]:
    """Load a directory of known mentions from YAML.

    Each top-level key is a mention id; the value is either the display name
    or a mapping of MentionObject fields (``display_name``, ``avatar_url``,
    and any extra metadata).

    Example file::

        "42": Amber
        "7":
          display_name: Bob
          avatar_url: https://example.com/bob.png

    Args:
        path: YAML file to read

    Returns:
        Dict of id -> MentionObject
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    mentions: dict[str, MentionObject] = {}
    for mention_id, value in data.items():
        mention_id = str(mention_id)
        if isinstance(value, dict):
            mentions[mention_id] = MentionObject(id=mention_id, **value)
        else:
            mentions[mention_id] = MentionObject(id=mention_id, display_name=str(value))
    logger.debug(f"Loaded {len(mentions)} mention(s) from {path}")
    return mentions
