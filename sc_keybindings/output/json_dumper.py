"""JSON output generation.

Writes the extracted keybindings and their source fingerprint to a single
JSON document:

    {
      "metadata": {"schemaVersion": 2, "language": "ENGLISH", ...},
      "actions": [{"name": ..., "bindings": {...}}, ...]
    }
"""

import json
import os
import tempfile
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any

from sc_keybindings.domain.constants import OUTPUT_SCHEMA_VERSION
from sc_keybindings.domain.models import (
    ActivationModeMetadata,
    BindingRecord,
    ExtractionFingerprint,
)


def _mode_to_dict(mode: ActivationModeMetadata) -> dict[str, Any]:
    return {
        'onPress': mode.on_press,
        'onHold': mode.on_hold,
        'onRelease': mode.on_release,
        'retriggerable': mode.retriggerable,
        'pressTriggerThreshold': mode.press_trigger_threshold,
        'releaseTriggerThreshold': mode.release_trigger_threshold,
        'releaseTriggerDelay': mode.release_trigger_delay,
        'multiTap': mode.multi_tap,
        'multiTapBlock': mode.multi_tap_block,
    }


def _record_to_dict(record: BindingRecord) -> dict[str, Any]:
    return {
        'name': record.name,
        'label': record.label,
        'description': record.description,
        'category': record.category,
        'mapName': record.map_name,
        'mapLabel': record.map_label,
        'activationMode': record.activation_mode.value,
        'isToggleCandidate': record.is_toggle_candidate,
        'bindings': asdict(record.bindings),
    }


class JSONDumper:
    """Writes the keybinding document.

    Args:
        pretty: Whether to pretty-print JSON (default True).
    """

    def __init__(self, pretty: bool = True) -> None:
        self._indent = 2 if pretty else None

    @staticmethod
    def build_document(
        fingerprint: ExtractionFingerprint,
        actions: list[BindingRecord],
        activation_modes: dict[str, ActivationModeMetadata],
    ) -> dict[str, Any]:
        """Assemble the output document."""
        return {
            'metadata': {
                'schemaVersion': OUTPUT_SCHEMA_VERSION,
                'extractedAt': datetime.now(timezone.utc).isoformat(),
                'language': fingerprint.language,
                'sourceArchivePath': fingerprint.source_archive_path,
                'sourceArchiveSize': fingerprint.source_archive_size,
                'sourceArchiveLastWrite': fingerprint.source_archive_last_write,
                'overrideProfilePath': fingerprint.override_profile_path,
                'overrideProfileSize': fingerprint.override_profile_size,
                'overrideProfileLastWrite': fingerprint.override_profile_last_write,
                'activationModes': {
                    mode.name: _mode_to_dict(mode) for mode in activation_modes.values()
                },
            },
            'actions': [_record_to_dict(r) for r in actions],
        }

    def write(
        self,
        output_path: str,
        fingerprint: ExtractionFingerprint,
        actions: list[BindingRecord],
        activation_modes: dict[str, ActivationModeMetadata],
    ) -> None:
        """Write the document to ``output_path``. Raises OSError on failure."""
        self._write_json(output_path, self.build_document(fingerprint, actions, activation_modes))

    def _write_json(self, path: str, data: Any) -> None:
        """Write data as JSON, replacing ``path`` only once the new file is complete."""
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix='.keybindings-', suffix='.tmp', dir=directory)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=self._indent, ensure_ascii=False, default=str)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
