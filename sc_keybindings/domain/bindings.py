"""Classification and normalization of binding strings.

Binding strings come straight from the game data (``space``, ``lalt+f``,
``mouse1``, ``mwheel_up``, ``hmd_roll``). Normalization turns the raw
attribute values of one action into canonical slots:

  1. trim whitespace
  2. empty → None
  3. mouse wheel / mouse button tokens in the keyboard slot move to mouse
  4. HMD-only keyboard bindings are dropped
"""

from sc_keybindings.domain.constants import (
    HMD_PREFIX,
    MODIFIER_KEYS,
    MOUSE_AXIS_PREFIX,
    MOUSE_BUTTON_ALIASES,
    MOUSE_BUTTON_TOKENS,
    MOUSE_WHEEL_PREFIX,
)
from sc_keybindings.domain.models import InputBindings


def clean_binding(value: str | None) -> str | None:
    """Trim a raw binding value; blank values become None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def is_modifier_only(value: str | None) -> bool:
    """True for a bare modifier key such as ``lalt``."""
    if not value or not value.strip():
        return False
    return value.strip().upper() in MODIFIER_KEYS


def is_mouse_wheel(value: str | None) -> bool:
    """True for a mouse wheel token without modifiers."""
    if not value or not value.strip() or '+' in value:
        return False
    return MOUSE_WHEEL_PREFIX in value.upper()


def is_mouse_button(value: str | None) -> bool:
    """True for a mouse button token without modifiers."""
    if not value or not value.strip() or '+' in value:
        return False
    upper = value.strip().upper()
    if upper in MOUSE_BUTTON_ALIASES:
        return True
    return any(token in upper for token in MOUSE_BUTTON_TOKENS)


def input_type(value: str | None) -> str:
    """Classify a binding string: mouse_button, mouse_wheel, mouse_axis, keyboard or unknown."""
    if not value or not value.strip():
        return 'unknown'
    upper = value.strip().upper()
    if upper in MOUSE_BUTTON_ALIASES or any(token in upper for token in MOUSE_BUTTON_TOKENS):
        return 'mouse_button'
    if MOUSE_WHEEL_PREFIX in upper:
        return 'mouse_wheel'
    if MOUSE_AXIS_PREFIX in upper:
        return 'mouse_axis'
    return 'keyboard'


def normalize_bindings(
    keyboard: str | None,
    mouse: str | None,
    joystick: str | None,
    gamepad: str | None,
) -> InputBindings:
    """Normalize the four raw binding values of one action.

    Applying this to an already normalized set of bindings is a no-op.
    """
    keyboard = clean_binding(keyboard)
    mouse = clean_binding(mouse)
    joystick = clean_binding(joystick)
    gamepad = clean_binding(gamepad)

    if keyboard and (is_mouse_wheel(keyboard) or is_mouse_button(keyboard)):
        mouse = keyboard
        keyboard = None

    if keyboard and keyboard.upper().startswith(HMD_PREFIX):
        keyboard = None

    return InputBindings(keyboard=keyboard, mouse=mouse, joystick=joystick, gamepad=gamepad)


def renormalize(bindings: InputBindings) -> InputBindings:
    """Run ``normalize_bindings`` over an existing InputBindings."""
    return normalize_bindings(bindings.keyboard, bindings.mouse, bindings.joystick, bindings.gamepad)
