"""
Activation mode resolution for actions without an explicit ``activationMode``.

Actions in the default profile often only carry trigger flags
(``onPress``, ``onHold``, ``onRelease``, ``retriggerable``). The mode is
chosen by an exact flag match against the profile's ActivationModes table,
falling back to a fixed heuristic. All functions here are pure.
"""
import logging

from sc_keybindings.domain.enums import ActivationMode
from sc_keybindings.domain.models import ActivationModeMetadata

logger = logging.getLogger(__name__)

# Mode names containing these markers share flags with the hold modes but
# describe a single-shot trigger; they are not matched for press+release actions.
AMBIGUOUS_MODE_MARKERS = ('press', 'tap')


def _declares_matching_threshold(triggers: ActivationModeMetadata,
                                 candidate: ActivationModeMetadata) -> bool:
    if triggers.press_trigger_threshold >= 0 and \
            triggers.press_trigger_threshold == candidate.press_trigger_threshold:
        return True
    if triggers.release_trigger_threshold >= 0 and \
            triggers.release_trigger_threshold == candidate.release_trigger_threshold:
        return True
    return False


def is_ambiguous_twin(mode_name: str, triggers: ActivationModeMetadata,
                      candidate: ActivationModeMetadata) -> bool:
    """True when ``mode_name`` must be skipped for an action with these triggers."""
    if not (triggers.on_press and triggers.on_release and not triggers.on_hold):
        return False
    lowered = mode_name.lower()
    if not any(marker in lowered for marker in AMBIGUOUS_MODE_MARKERS):
        return False
    return not _declares_matching_threshold(triggers, candidate)


def find_exact_match(triggers: ActivationModeMetadata,
                     modes: dict[str, ActivationModeMetadata]) -> ActivationMode | None:
    """First mode in table order whose four flags equal the action's, or None."""
    for name, candidate in modes.items():
        if is_ambiguous_twin(name, triggers, candidate):
            continue
        if candidate.flags != triggers.flags:
            continue
        mode = ActivationMode.from_name(name)
        if mode is not None:
            return mode
    return None


def infer_from_heuristic(triggers: ActivationModeMetadata) -> ActivationMode:
    """Fallback mapping from trigger flags to a mode."""
    on_press, on_hold, on_release, retriggerable = triggers.flags
    if on_press and on_release and not on_hold:
        return ActivationMode.HOLD if retriggerable else ActivationMode.HOLD_NO_RETRIGGER
    if on_hold:
        return ActivationMode.HOLD
    if on_release and not on_press:
        return ActivationMode.TAP
    return ActivationMode.PRESS


def resolve_activation_mode(explicit: str | None,
                            triggers: ActivationModeMetadata,
                            modes: dict[str, ActivationModeMetadata]) -> ActivationMode:
    """
    Decide the activation mode of one action.

    Args:
        explicit: Value of the action's ``activationMode`` attribute, if any.
        triggers: The action's own trigger flags and thresholds.
        modes: ActivationModes table of the profile, in declaration order.

    Returns:
        The explicit mode when it names a known mode (unknown names give
        ``press``), else the first exact table match, else the heuristic.
    """
    if explicit and explicit.strip():
        mode = ActivationMode.from_name(explicit)
        if mode is None:
            logger.warning("Unknown activation mode '%s' on %s, using 'press'",
                           explicit, triggers.name)
            return ActivationMode.PRESS
        return mode

    return find_exact_match(triggers, modes) or infer_from_heuristic(triggers)
