"""Resolves localization keys in binding records to display text.

Labels in the default profile are keys such as ``@ui_CIFlightSystems``.
The game's ``global.ini`` maps them to text:
  ui_CIFlightSystems=Flight Systems
"""
from sc_keybindings.domain.constants import (
    INI_COMMENT_PREFIXES,
    LOCALIZATION_KEY_MARKER,
    UI_KEY_PREFIX,
)
from sc_keybindings.domain.models import BindingRecord


class LocalizationResolver:
    """Replaces localization keys in BindingRecords with translated text."""

    def __init__(self, lookup: dict[str, str]) -> None:
        # Keys are stored case-folded.
        self._lookup = {k.lower(): v for k, v in lookup.items()}

    def __len__(self) -> int:
        return len(self._lookup)

    @staticmethod
    def build_lookup(content: str) -> dict[str, str]:
        """Parse global.ini text into a key→text dict.

        ``ui_`` keys are stored under their ``@`` form, which is how the
        profile references them. Keys are case-folded.
        """
        lookup: dict[str, str] = {}
        if not content:
            return lookup
        for line in content.lstrip('\ufeff').splitlines():
            line = line.strip()
            if not line or line.startswith(INI_COMMENT_PREFIXES):
                continue
            if '=' not in line:
                continue
            k, v = line.split('=', 1)
            k = k.strip()
            if not k:
                continue
            if k.lower().startswith(UI_KEY_PREFIX):
                k = LOCALIZATION_KEY_MARKER + k
            lookup[k.lower()] = v.strip()
        return lookup

    def resolve(self, value: str) -> str:
        """Translated text for ``value`` if it is a known key, else ``value``."""
        if not value or not self._lookup:
            return value
        return self._lookup.get(value.strip().lower(), value)

    def apply(self, records: list[BindingRecord]) -> int:
        """Localize label, description, map label and category in place.

        Returns the number of fields replaced.
        """
        if not self._lookup:
            return 0
        replaced = 0
        for record in records:
            for attr in ('label', 'description', 'map_label', 'category'):
                current = getattr(record, attr)
                resolved = self.resolve(current)
                if resolved != current:
                    setattr(record, attr, resolved)
                    replaced += 1
        return replaced
