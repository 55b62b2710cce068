"""
Cache fingerprints for the keybinding output file.

The output records size and last-write time of its source files. It is
regenerated only when one of those changes, a profile appears or
disappears, or the game language changes. File contents are never read
or hashed here.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from sc_keybindings.domain.constants import (
    DEFAULT_LANGUAGE,
    INI_COMMENT_PREFIXES,
    LANGUAGE_CONFIG_KEY,
    SUPPORTED_LANGUAGES,
    USER_CONFIG_FILENAME,
)
from sc_keybindings.domain.models import ExtractionFingerprint, Installation
from sc_keybindings.file_system import FileSystem, LocalFileSystem

logger = logging.getLogger(__name__)


def _same_path(a: str | None, b: str | None) -> bool:
    if not a or not b:
        return not a and not b
    return os.path.normcase(os.path.normpath(a)) == os.path.normcase(os.path.normpath(b))


class KeybindingMetadataService:
    """Language detection and staleness checks for the output file."""

    def __init__(self, file_system: FileSystem | None = None) -> None:
        self._fs = file_system or LocalFileSystem()

    # ── Language ─────────────────────────────────────────────────────────

    def detect_language(self, channel_path: str | None) -> str:
        """
        Read the game language from ``<channel>/user.cfg``.

        Args:
            channel_path: Game channel directory (e.g. .../StarCitizen/LIVE).

        Returns:
            The upper-cased ``g_language`` value when it names a supported
            language, otherwise ``ENGLISH``.
        """
        if not channel_path:
            return DEFAULT_LANGUAGE

        cfg_path = os.path.join(channel_path, USER_CONFIG_FILENAME)
        if not self._fs.file_exists(cfg_path):
            return DEFAULT_LANGUAGE

        try:
            lines = self._fs.read_all_lines(cfg_path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Failed to read %s: %s", cfg_path, e)
            return DEFAULT_LANGUAGE

        for line in lines:
            line = line.strip()
            if not line or line.startswith(INI_COMMENT_PREFIXES):
                continue
            if '=' not in line:
                continue
            key, value = line.split('=', 1)
            if key.strip().lower() != LANGUAGE_CONFIG_KEY.lower():
                continue
            language = value.strip().strip('"').strip().upper()
            if language in SUPPORTED_LANGUAGES:
                logger.debug("Detected language from %s: %s", USER_CONFIG_FILENAME, language)
                return language
            logger.warning("Unsupported language '%s' in %s, using %s",
                           value.strip(), USER_CONFIG_FILENAME, DEFAULT_LANGUAGE)
            return DEFAULT_LANGUAGE

        return DEFAULT_LANGUAGE

    # ── Fingerprints ─────────────────────────────────────────────────────

    def build_fingerprint(self, installation: Installation, language: str) -> ExtractionFingerprint:
        """Capture the current size and last-write time of the source files."""
        archive_info = self._fs.get_file_info(installation.archive_path)

        profile_path = self._existing_profile(installation)
        profile_info = self._fs.get_file_info(profile_path) if profile_path else None

        return ExtractionFingerprint(
            source_archive_path=installation.archive_path,
            source_archive_size=archive_info.size,
            source_archive_last_write=archive_info.last_write,
            language=language,
            override_profile_path=profile_path,
            override_profile_size=profile_info.size if profile_info else None,
            override_profile_last_write=profile_info.last_write if profile_info else None,
        )

    def needs_regeneration(self, output_path: str, installation: Installation,
                           language: str | None = None) -> bool:
        """
        Decide whether the output file must be rebuilt.

        Args:
            output_path: Existing output JSON.
            installation: Current source locations.
            language: Language the output should be in; detected from
                user.cfg when omitted.

        Returns:
            True when the output is missing or unusable, or any recorded
            source fingerprint no longer matches.
        """
        metadata = self._read_metadata(output_path)
        if metadata is None:
            return True

        if self._archive_changed(metadata, installation):
            return True
        if self._profile_changed(metadata, installation):
            return True

        expected = language or self.detect_language(installation.channel_path)
        recorded = str(metadata.get('language') or '')
        if recorded.upper() != expected.upper():
            logger.debug("Language changed from '%s' to '%s'", recorded, expected)
            return True

        return False

    # ── Helpers ──────────────────────────────────────────────────────────

    def _existing_profile(self, installation: Installation) -> str | None:
        path = installation.override_profile_path
        if path and self._fs.file_exists(path):
            return path
        return None

    def _read_metadata(self, output_path: str) -> dict[str, Any] | None:
        if not output_path or not self._fs.file_exists(output_path):
            return None
        try:
            document = json.loads(self._fs.read_all_text(output_path))
        except (OSError, UnicodeDecodeError, ValueError) as e:
            logger.debug("Output %s is unreadable: %s", output_path, e)
            return None
        if not isinstance(document, dict):
            return None
        metadata = document.get('metadata')
        if not isinstance(metadata, dict) or not metadata:
            return None
        return metadata

    def _file_changed(self, path: str, size: Any, last_write: Any) -> bool:
        if not self._fs.file_exists(path):
            logger.debug("Source file disappeared: %s", path)
            return True
        try:
            info = self._fs.get_file_info(path)
        except OSError as e:
            logger.debug("Could not stat %s: %s", path, e)
            return True
        if size != info.size or last_write != info.last_write:
            logger.debug("Source file changed: %s", path)
            return True
        return False

    def _archive_changed(self, metadata: dict[str, Any], installation: Installation) -> bool:
        recorded = metadata.get('sourceArchivePath') or None
        if not _same_path(recorded, installation.archive_path):
            logger.debug("Source archive changed from %s to %s", recorded, installation.archive_path)
            return True
        return self._file_changed(
            installation.archive_path,
            metadata.get('sourceArchiveSize'),
            metadata.get('sourceArchiveLastWrite'),
        )

    def _profile_changed(self, metadata: dict[str, Any], installation: Installation) -> bool:
        recorded = metadata.get('overrideProfilePath') or None
        if recorded and not self._fs.file_exists(recorded):
            logger.debug("Recorded override profile disappeared: %s", recorded)
            return True

        current = self._existing_profile(installation)
        if not _same_path(current, recorded):
            logger.debug("Override profile changed from %s to %s", recorded, current)
            return True
        if current is None:
            return False
        return self._file_changed(
            current,
            metadata.get('overrideProfileSize'),
            metadata.get('overrideProfileLastWrite'),
        )
