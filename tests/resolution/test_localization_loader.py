"""Tests for LocalizationLoader."""

import os

from sc_keybindings.archive_reader import ArchiveReader
from sc_keybindings.resolution.localization_loader import LocalizationLoader, normalize_language
from tests.conftest import zip_bytes

CHANNEL = os.path.join('/games', 'StarCitizen', 'LIVE')
ARCHIVE = os.path.join(CHANNEL, 'Data.p4k')


def _override_path(language):
    return os.path.join(CHANNEL, 'data', 'Localization', language, 'global.ini')


class TestNormalizeLanguage:

    def test_supported(self):
        assert normalize_language('german_(germany)') == 'GERMAN_(GERMANY)'

    def test_unsupported_falls_back(self):
        assert normalize_language('klingon') == 'ENGLISH'
        assert normalize_language(None) == 'ENGLISH'


class TestLocalizationLoader:

    def setup_method(self):
        self.archive = None

    def teardown_method(self):
        if self.archive is not None:
            self.archive.close()

    def _open_archive(self, memory_fs, entries):
        memory_fs.add(ARCHIVE, zip_bytes(entries))
        self.archive = ArchiveReader(memory_fs)
        assert self.archive.open(ARCHIVE)
        return self.archive

    def test_override_folder_wins(self, memory_fs):
        memory_fs.add(_override_path('english'), 'ui_CIJump=Jump (override)')
        archive = self._open_archive(memory_fs, {
            'Data/Localization/english/global.ini': 'ui_CIJump=Jump',
        })
        lookup = LocalizationLoader(memory_fs).load('ENGLISH', archive, CHANNEL)
        assert lookup['@ui_cijump'] == 'Jump (override)'

    def test_archive_used_without_override(self, memory_fs):
        archive = self._open_archive(memory_fs, {
            'Data/Localization/english/global.ini': 'ui_CIJump=Jump',
        })
        lookup = LocalizationLoader(memory_fs).load('english', archive, CHANNEL)
        assert lookup == {'@ui_cijump': 'Jump'}

    def test_falls_back_to_default_language(self, memory_fs, caplog):
        archive = self._open_archive(memory_fs, {
            'Data/Localization/english/global.ini': 'ui_CIJump=Jump',
        })
        lookup = LocalizationLoader(memory_fs).load('FRENCH_(FRANCE)', archive, CHANNEL)
        assert lookup == {'@ui_cijump': 'Jump'}
        assert 'falling back' in caplog.text

    def test_selected_language_from_archive(self, memory_fs):
        archive = self._open_archive(memory_fs, {
            'Data/Localization/english/global.ini': 'ui_CIJump=Jump',
            'Data/Localization/german_(germany)/global.ini': 'ui_CIJump=Springen',
        })
        lookup = LocalizationLoader(memory_fs).load('GERMAN_(GERMANY)', archive, CHANNEL)
        assert lookup == {'@ui_cijump': 'Springen'}

    def test_nothing_found_gives_empty_table(self, memory_fs):
        archive = self._open_archive(memory_fs, {'Data/other.txt': 'x'})
        assert LocalizationLoader(memory_fs).load('ENGLISH', archive, CHANNEL) == {}

    def test_no_archive_and_no_channel(self, memory_fs):
        assert LocalizationLoader(memory_fs).load('ENGLISH', None) == {}
