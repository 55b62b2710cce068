"""Binary XML, default profile and override profile parsers."""

from sc_keybindings.parsers.base_parser import BaseParser
from sc_keybindings.parsers.cryxml_parser import CryXmlParser
from sc_keybindings.parsers.actionmap_parser import ActionMapParser
from sc_keybindings.parsers.user_override_parser import UserOverrideParser

__all__ = [
    'BaseParser', 'CryXmlParser', 'ActionMapParser', 'UserOverrideParser',
]
