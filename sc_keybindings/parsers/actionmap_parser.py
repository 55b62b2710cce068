"""
Parser for the game's default profile (``defaultProfile.xml``).

Reads the ActivationModes table and every ``<action>`` inside an
``<actionmap>``, producing one BindingRecord per bindable action with
normalized bindings and a resolved activation mode.
"""

import logging
import xml.etree.ElementTree as ET

from sc_keybindings.domain.bindings import clean_binding, normalize_bindings
from sc_keybindings.domain.constants import BINDING_SLOTS, TOGGLE_MARKER
from sc_keybindings.domain.models import (
    ActionMapParseResult,
    ActivationModeMetadata,
    BindingRecord,
)
from sc_keybindings.parsers.activation_mode_resolver import resolve_activation_mode
from sc_keybindings.parsers.base_parser import BaseParser

logger = logging.getLogger(__name__)


class ActionMapParser(BaseParser):
    """
    Parser for default profile XML text.

    Extracts the activation mode table and all bindable actions.
    """

    def parse(self, xml_text: str) -> ActionMapParseResult:
        """
        Parse default profile XML text.

        Args:
            xml_text: Decoded XML text of defaultProfile.xml

        Returns:
            ActionMapParseResult with:
            - actions: BindingRecords in document order
            - activation_modes: table keyed by lower-cased mode name
            or a failure result when the text is not well-formed XML.
        """
        try:
            root = self._load(xml_text)
        except ET.ParseError as e:
            return ActionMapParseResult.failure(str(e))

        modes = self._read_activation_modes(root)
        actions: list[BindingRecord] = []

        for actionmap in root.iter():
            if not self._tag_is(actionmap, 'actionmap'):
                continue
            map_name = self._get_attr(actionmap, 'name')
            map_label = self._get_attr(actionmap, 'UILabel')
            map_category = self._get_attr(actionmap, 'UICategory')

            for action_elem in actionmap.iter():
                if not self._tag_is(action_elem, 'action'):
                    continue
                record = self._parse_action(action_elem, map_name, map_label, map_category, modes)
                if record is not None:
                    actions.append(record)

        logger.debug("Parsed %d actions and %d activation modes", len(actions), len(modes))
        return ActionMapParseResult.success(actions, modes)

    def parse_activation_modes(self, xml_text: str) -> dict[str, ActivationModeMetadata]:
        """Parse only the ActivationModes table. Malformed XML gives an empty table."""
        try:
            root = self._load(xml_text)
        except ET.ParseError as e:
            logger.warning("Could not parse activation modes: %s", e)
            return {}
        return self._read_activation_modes(root)

    @staticmethod
    def _load(xml_text: str) -> ET.Element:
        if not xml_text or not xml_text.strip():
            raise ET.ParseError("document is empty")
        return ET.fromstring(xml_text.lstrip('\ufeff'))

    def _read_activation_modes(self, root: ET.Element) -> dict[str, ActivationModeMetadata]:
        modes: dict[str, ActivationModeMetadata] = {}
        for elem in root.iter():
            if not self._tag_is(elem, 'ActivationMode'):
                continue
            name = self._get_attr(elem, 'name').strip()
            if not name:
                continue
            modes[name.lower()] = self._read_triggers(elem, name)
        return modes

    def _read_triggers(self, elem: ET.Element, name: str) -> ActivationModeMetadata:
        """Trigger flags and timings from an ActivationMode or action element."""
        return ActivationModeMetadata(
            name=name,
            on_press=self._get_flag(elem, 'onPress'),
            on_hold=self._get_flag(elem, 'onHold'),
            on_release=self._get_flag(elem, 'onRelease'),
            retriggerable=self._get_flag(elem, 'retriggerable'),
            press_trigger_threshold=self._get_float(elem, 'pressTriggerThreshold', -1.0),
            release_trigger_threshold=self._get_float(elem, 'releaseTriggerThreshold', -1.0),
            release_trigger_delay=self._get_float(elem, 'releaseTriggerDelay', 0.0),
            multi_tap=self._get_int(elem, 'multiTap', 1),
            multi_tap_block=self._get_int(elem, 'multiTapBlock', 1),
        )

    def _parse_action(self, elem: ET.Element, map_name: str, map_label: str,
                      map_category: str,
                      modes: dict[str, ActivationModeMetadata]) -> BindingRecord | None:
        name = self._get_attr(elem, 'name').strip()
        if not name:
            return None
        label = self._get_attr(elem, 'UILabel')
        if not label:
            return None
        description = self._get_attr(elem, 'UIDescription')

        mode = resolve_activation_mode(
            self._get_attr(elem, 'activationMode'),
            self._read_triggers(elem, name),
            modes,
        )
        raw = {slot: self._read_binding(elem, slot) for slot in BINDING_SLOTS}

        return BindingRecord(
            name=name,
            map_name=map_name,
            map_label=map_label,
            label=label,
            description=description,
            category=map_category or map_label,
            activation_mode=mode,
            bindings=normalize_bindings(**raw),
            is_toggle_candidate=(
                TOGGLE_MARKER in name.lower() or TOGGLE_MARKER in description.lower()
            ),
        )

    def _read_binding(self, elem: ET.Element, slot: str) -> str | None:
        """Direct attribute value, else the first nested ``<slot><inputdata input/>``."""
        direct = clean_binding(elem.get(slot))
        if direct:
            return direct

        device = self._first_child(elem, slot)
        if device is None:
            return None
        for child in device:
            if self._tag_is(child, 'inputdata'):
                value = clean_binding(child.get('input'))
                if value:
                    return value
        return None
