"""Shared data models used across the extraction pipeline."""

from dataclasses import dataclass, field

from sc_keybindings.domain.enums import ActivationMode


@dataclass(frozen=True)
class ArchiveEntry:
    """A file entry found by scanning the archive."""

    path: str
    offset: int
    compressed_size: int
    uncompressed_size: int
    is_compressed: bool


@dataclass
class XmlNode:
    """A node of a decoded binary XML document."""

    tag: str
    content: str = ''
    attributes: list[tuple[str, str]] = field(default_factory=list)
    children: list['XmlNode'] = field(default_factory=list)


@dataclass(frozen=True)
class ActivationModeMetadata:
    """Trigger flags and timings of one named activation mode.

    Thresholds are in seconds; -1 means "not set".
    """

    name: str
    on_press: bool = False
    on_hold: bool = False
    on_release: bool = False
    retriggerable: bool = False
    press_trigger_threshold: float = -1.0
    release_trigger_threshold: float = -1.0
    release_trigger_delay: float = 0.0
    multi_tap: int = 1
    multi_tap_block: int = 1

    @property
    def flags(self) -> tuple[bool, bool, bool, bool]:
        return (self.on_press, self.on_hold, self.on_release, self.retriggerable)


@dataclass
class InputBindings:
    """Binding strings for each input device of one action."""

    keyboard: str | None = None
    mouse: str | None = None
    joystick: str | None = None
    gamepad: str | None = None

    def has_any(self) -> bool:
        return any((self.keyboard, self.mouse, self.joystick, self.gamepad))


@dataclass
class BindingRecord:
    """A bindable action discovered in the default profile."""

    name: str
    map_name: str
    map_label: str = ''
    label: str = ''
    description: str = ''
    category: str = ''
    activation_mode: ActivationMode = ActivationMode.PRESS
    bindings: InputBindings = field(default_factory=InputBindings)
    is_toggle_candidate: bool = False


@dataclass(frozen=True)
class ExtractionFingerprint:
    """Source file state recorded alongside the output to detect staleness."""

    source_archive_path: str
    source_archive_size: int
    source_archive_last_write: str
    language: str
    override_profile_path: str | None = None
    override_profile_size: int | None = None
    override_profile_last_write: str | None = None


@dataclass(frozen=True)
class Installation:
    """Locations of one game installation's source files."""

    archive_path: str
    channel_path: str | None = None
    override_profile_path: str | None = None


@dataclass(frozen=True)
class UserOverrides:
    """Per-slot binding overrides parsed from a user profile, keyed by action name."""

    keyboard: dict[str, str] = field(default_factory=dict)
    mouse: dict[str, str] = field(default_factory=dict)
    joystick: dict[str, str] = field(default_factory=dict)
    gamepad: dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.keyboard) + len(self.mouse) + len(self.joystick) + len(self.gamepad)

    @property
    def has_overrides(self) -> bool:
        return self.total > 0


@dataclass
class ExtractOptions:
    """Options controlling an extraction run."""

    pretty: bool = True
    language: str | None = None
    force: bool = False


# ── Results ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CryXmlConversionResult:
    """Outcome of decoding a binary XML buffer."""

    is_success: bool
    xml: str | None = None
    error: str | None = None

    @classmethod
    def success(cls, xml: str) -> 'CryXmlConversionResult':
        return cls(is_success=True, xml=xml)

    @classmethod
    def failure(cls, error: str) -> 'CryXmlConversionResult':
        return cls(is_success=False, error=error)


@dataclass(frozen=True)
class ActionMapParseResult:
    """Outcome of parsing action-map XML text."""

    is_success: bool
    actions: list[BindingRecord] = field(default_factory=list)
    activation_modes: dict[str, ActivationModeMetadata] = field(default_factory=dict)
    error: str | None = None

    @classmethod
    def success(
        cls,
        actions: list[BindingRecord],
        activation_modes: dict[str, ActivationModeMetadata],
    ) -> 'ActionMapParseResult':
        return cls(is_success=True, actions=actions, activation_modes=activation_modes)

    @classmethod
    def failure(cls, error: str) -> 'ActionMapParseResult':
        return cls(is_success=False, error=error)


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of one pipeline run, as reported to callers."""

    is_success: bool
    message: str = ''
    language: str | None = None
    regenerated: bool = False

    @classmethod
    def success(cls, language: str, message: str = '', regenerated: bool = True) -> 'ProcessResult':
        return cls(is_success=True, message=message, language=language, regenerated=regenerated)

    @classmethod
    def failure(cls, message: str) -> 'ProcessResult':
        return cls(is_success=False, message=message)
