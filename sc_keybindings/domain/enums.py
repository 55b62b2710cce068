"""Domain enums for the keybinding extractor."""
from enum import Enum


class ActivationMode(Enum):
    """Activation modes as named in the ActivationModes table of defaultProfile.xml."""
    TAP = "tap"
    DOUBLE_TAP = "double_tap"
    DOUBLE_TAP_NONBLOCKING = "double_tap_nonblocking"
    TAP_QUICKER = "tap_quicker"
    PRESS = "press"
    PRESS_QUICKER = "press_quicker"
    DELAYED_PRESS = "delayed_press"
    DELAYED_PRESS_QUICKER = "delayed_press_quicker"
    DELAYED_PRESS_MEDIUM = "delayed_press_medium"
    DELAYED_PRESS_LONG = "delayed_press_long"
    HOLD = "hold"
    HOLD_NO_RETRIGGER = "hold_no_retrigger"
    ALL = "all"
    DELAYED_HOLD = "delayed_hold"
    DELAYED_HOLD_LONG = "delayed_hold_long"
    DELAYED_HOLD_NO_RETRIGGER = "delayed_hold_no_retrigger"
    HOLD_TOGGLE = "hold_toggle"
    SMART_TOGGLE = "smart_toggle"

    @classmethod
    def from_name(cls, name: str | None) -> 'ActivationMode | None':
        """Look up a mode by its game name, case-insensitively. Unknown names give None."""
        if not name:
            return None
        return _BY_NAME.get(name.strip().lower())


_BY_NAME = {mode.value: mode for mode in ActivationMode}
