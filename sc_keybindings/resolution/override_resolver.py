"""Applies user binding overrides to the parsed default-profile records."""
import logging
from dataclasses import replace

from sc_keybindings.domain.bindings import renormalize
from sc_keybindings.domain.constants import BINDING_SLOTS
from sc_keybindings.domain.models import BindingRecord, InputBindings, UserOverrides

logger = logging.getLogger(__name__)


class OverrideResolver:
    """Merges UserOverrides into BindingRecords.

    Action names match case-insensitively; when the records contain the
    same name twice, the last one receives the override. Overrides for
    unknown actions are ignored.
    """

    def __init__(self, overrides: UserOverrides) -> None:
        self._overrides = overrides

    def apply(self, records: list[BindingRecord]) -> int:
        """Apply the overrides in place and return the number of records changed.

        New bindings are computed for every affected record before any
        record is modified.
        """
        if not self._overrides.has_overrides:
            return 0

        lookup: dict[str, BindingRecord] = {}
        for record in records:
            lookup[record.name.lower()] = record

        staged: dict[int, tuple[BindingRecord, InputBindings]] = {}
        for slot in BINDING_SLOTS:
            for action_name, binding in getattr(self._overrides, slot).items():
                record = lookup.get(action_name.lower())
                if record is None:
                    continue
                _, current = staged.get(id(record), (record, record.bindings))
                staged[id(record)] = (record, replace(current, **{slot: binding}))

        committed = {key: (record, renormalize(bindings)) for key, (record, bindings) in staged.items()}
        for record, bindings in committed.values():
            record.bindings = bindings

        logger.debug("Applied overrides to %d actions", len(committed))
        return len(committed)
