"""
Base class for the XML parsers.

Provides the attribute helpers shared by the default profile and user
override parsers.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
import xml.etree.ElementTree as ET


class BaseParser(ABC):
    """
    Abstract base class for XML parsers.

    Subclasses implement ``parse``; the helpers read attributes the way the
    game files write them (flags as ``"1"``, numbers with a ``.`` decimal point).
    """

    @abstractmethod
    def parse(self, source: str) -> Any:
        """Parse ``source`` and return the parser's result object."""

    @staticmethod
    def _tag_is(elem: ET.Element, name: str) -> bool:
        """Case-insensitive tag comparison."""
        return isinstance(elem.tag, str) and elem.tag.lower() == name.lower()

    @staticmethod
    def _get_attr(elem: ET.Element, name: str, default: str = '') -> str:
        """Attribute value, or ``default`` when absent."""
        value = elem.get(name)
        return value if value is not None else default

    @staticmethod
    def _get_flag(elem: ET.Element, name: str) -> bool:
        """True only when the attribute is exactly ``"1"``."""
        return elem.get(name) == '1'

    @staticmethod
    def _get_float(elem: ET.Element, name: str, default: float) -> float:
        value = elem.get(name)
        if value is None or not value.strip():
            return default
        try:
            return float(value)
        except ValueError:
            return default

    @staticmethod
    def _get_int(elem: ET.Element, name: str, default: int) -> int:
        value = elem.get(name)
        if value is None or not value.strip():
            return default
        try:
            return int(value)
        except ValueError:
            return default

    @staticmethod
    def _first_child(elem: ET.Element, name: str) -> Optional[ET.Element]:
        """First direct child whose tag matches ``name`` case-insensitively."""
        for child in elem:
            if BaseParser._tag_is(child, name):
                return child
        return None
