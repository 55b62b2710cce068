"""Loads the ``global.ini`` translation table for a language.

Sources, first hit wins:
  1. ``<channel>/data/Localization/<language>/global.ini`` (user override folder)
  2. ``Data/Localization/<language>/global.ini`` inside the archive
  3. the same two sources for the default language
An empty table is returned when nothing can be read.
"""
import logging
import os

from sc_keybindings.archive_reader import ArchiveReader
from sc_keybindings.domain.constants import (
    DEFAULT_LANGUAGE,
    GLOBAL_INI_FILENAME,
    LOCALIZATION_BASE_DIRECTORY,
    LOCALIZATION_OVERRIDE_DIRECTORY,
    SUPPORTED_LANGUAGES,
)
from sc_keybindings.file_system import FileSystem, LocalFileSystem
from sc_keybindings.resolution.localization_resolver import LocalizationResolver

logger = logging.getLogger(__name__)


def normalize_language(language: str | None) -> str:
    """Upper-cased language name, or the default when unsupported."""
    normalized = (language or '').strip().upper()
    if normalized in SUPPORTED_LANGUAGES:
        return normalized
    if normalized:
        logger.warning("Unsupported language '%s', using %s", language, DEFAULT_LANGUAGE)
    return DEFAULT_LANGUAGE


class LocalizationLoader:
    """Finds and parses global.ini for a channel and language."""

    def __init__(self, file_system: FileSystem | None = None) -> None:
        self._fs = file_system or LocalFileSystem()

    def load(self, language: str, archive: ArchiveReader | None,
             channel_path: str | None = None) -> dict[str, str]:
        """
        Load the translation table.

        Args:
            language: Language name as found in user.cfg (any case).
            archive: An open archive to fall back to, or None.
            channel_path: Game channel directory holding the override folder.

        Returns:
            Key→text dict (see LocalizationResolver.build_lookup); empty
            when no source could be read.
        """
        language = normalize_language(language)

        content = self._read_content(language, archive, channel_path)
        if content is None and language != DEFAULT_LANGUAGE:
            logger.warning("Language '%s' not found, falling back to %s", language, DEFAULT_LANGUAGE)
            content = self._read_content(DEFAULT_LANGUAGE, archive, channel_path)

        if content is None:
            logger.warning("No %s could be loaded, labels stay unlocalized", GLOBAL_INI_FILENAME)
            return {}

        lookup = LocalizationResolver.build_lookup(content)
        logger.debug("Loaded %d localization entries for %s", len(lookup), language)
        return lookup

    def _read_content(self, language: str, archive: ArchiveReader | None,
                      channel_path: str | None) -> str | None:
        content = self._read_override_folder(language, channel_path)
        if content is not None:
            return content
        return self._read_archive(language, archive)

    def _read_override_folder(self, language: str, channel_path: str | None) -> str | None:
        if not channel_path:
            return None
        for folder in dict.fromkeys((language.lower(), language)):
            path = os.path.join(channel_path, LOCALIZATION_OVERRIDE_DIRECTORY, folder,
                                GLOBAL_INI_FILENAME)
            if not self._fs.file_exists(path):
                continue
            try:
                return self._fs.read_all_text(path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Failed to read localization override %s: %s", path, e)
                return None
        return None

    @staticmethod
    def _read_archive(language: str, archive: ArchiveReader | None) -> str | None:
        if archive is None or not archive.is_open:
            return None
        entries = archive.scan_directory(f"{LOCALIZATION_BASE_DIRECTORY}/{language}",
                                         GLOBAL_INI_FILENAME)
        if not entries:
            logger.debug("%s not found in archive for %s", GLOBAL_INI_FILENAME, language)
            return None
        return archive.read_text(entries[0])
