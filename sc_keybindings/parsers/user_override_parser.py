"""
Parser for the user's saved binding overrides (``actionmaps.xml``).

The game writes one ``<rebind input="kb1_space"/>`` per customized device
slot inside each ``<action name="...">``. The two-letter prefix of the input
names the device; the text after the first underscore is the binding.
"""

import logging
import xml.etree.ElementTree as ET

from sc_keybindings.domain.constants import REBIND_PREFIX_TO_SLOT
from sc_keybindings.domain.models import UserOverrides
from sc_keybindings.file_system import FileSystem, LocalFileSystem
from sc_keybindings.parsers.base_parser import BaseParser

logger = logging.getLogger(__name__)


def split_rebind_input(value: str) -> tuple[str | None, str | None]:
    """Split ``kb1_space`` into (``keyboard``, ``space``).

    Either part is None when the prefix is unknown or nothing follows the
    first underscore.
    """
    slot = REBIND_PREFIX_TO_SLOT.get(value[:2].lower()) if len(value) >= 2 else None
    _, sep, rest = value.partition('_')
    binding = rest.strip() if sep else ''
    return slot, binding or None


class UserOverrideParser(BaseParser):
    """Reads rebinds from an actionmaps.xml file."""

    def __init__(self, file_system: FileSystem | None = None):
        self._fs = file_system or LocalFileSystem()

    def parse(self, path: str) -> UserOverrides | None:
        """
        Parse the override profile at ``path``.

        Returns:
            UserOverrides, or None when the file is absent (expected) or
            cannot be read or parsed (logged as a warning).
        """
        if not path or not self._fs.file_exists(path):
            return None

        try:
            xml_text = self._fs.read_all_text(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Failed to read override profile %s: %s", path, e)
            return None

        try:
            return self.parse_text(xml_text)
        except ET.ParseError as e:
            logger.warning("Failed to parse override profile %s: %s", path, e)
            return None

    def parse_text(self, xml_text: str) -> UserOverrides:
        """Parse actionmaps.xml text. Raises ET.ParseError on malformed XML."""
        root = ET.fromstring(xml_text.lstrip('\ufeff'))
        overrides = UserOverrides()
        slots = {
            'keyboard': overrides.keyboard,
            'mouse': overrides.mouse,
            'joystick': overrides.joystick,
            'gamepad': overrides.gamepad,
        }

        for action in root.iter():
            if not self._tag_is(action, 'action'):
                continue
            name = self._get_attr(action, 'name').strip()
            if not name:
                continue

            for rebind in action.iter():
                if not self._tag_is(rebind, 'rebind'):
                    continue
                value = self._get_attr(rebind, 'input').strip()
                if not value:
                    continue
                slot, binding = split_rebind_input(value)
                if slot is None or binding is None:
                    continue
                slots[slot][name] = binding

        logger.debug("Parsed %d binding overrides", overrides.total)
        return overrides
