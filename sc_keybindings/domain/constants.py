"""Shared constants: archive paths, file names, binary XML layout and input tokens.

Centralizes the fixed contract values used by the archive reader, the
parsers, the resolution steps and the metadata service.
"""

# ── Archive Paths ────────────────────────────────────────────────────────

DATA_PREFIX = 'Data/'
KEYBINDING_CONFIG_DIRECTORY = 'Data/Libs/Config'
LOCALIZATION_BASE_DIRECTORY = 'Data/Localization'

# ── Archive Entry Encoding ───────────────────────────────────────────────

# Zip compression method id used by Data.p4k for Zstandard entries
ZIP_ZSTANDARD = 100
ZSTD_FRAME_MAGIC = b'\x28\xb5\x2f\xfd'
# Data.p4k writes either signature in local file headers
ZIP_LOCAL_HEADER_SIGNATURES = (b'PK\x03\x04', b'PK\x03\x14')
ZIP_ENCRYPTED_FLAG = 0x1

# Publicly known AES-256 key shared by every Data.p4k; entries use CBC with a zero IV
P4K_ENCRYPTION_KEY = bytes((
    0x5E, 0x7A, 0x20, 0x02, 0x30, 0x2E, 0xEB, 0x1A, 0x3B, 0xB6, 0x17, 0xC3, 0x0F, 0xDE, 0x1E, 0x47,
    0x8D, 0x92, 0x3D, 0x1B, 0xB3, 0xA7, 0x49, 0x8F, 0x4F, 0x1C, 0x82, 0x2C, 0x4E, 0xDA, 0x0A, 0x4C,
))

# ── File Names ───────────────────────────────────────────────────────────

DEFAULT_PROFILE_FILENAME = 'defaultProfile.xml'
GLOBAL_INI_FILENAME = 'global.ini'
USER_CONFIG_FILENAME = 'user.cfg'
ACTION_MAPS_FILENAME = 'actionmaps.xml'

# Relative to the channel directory (e.g. .../StarCitizen/LIVE)
USER_PROFILE_DIRECTORY = 'user/client/0/Profiles/default'
LOCALIZATION_OVERRIDE_DIRECTORY = 'data/Localization'

# ── Binary XML (CryXmlB) Layout ──────────────────────────────────────────

CRYXML_SIGNATURE = b'CryXmlB'
CRYXML_HEADER_SIZE = 44
CRYXML_NODE_SIZE = 28
CRYXML_ATTRIBUTE_SIZE = 8
CRYXML_CHILD_INDEX_SIZE = 4

# ── Localization ─────────────────────────────────────────────────────────

DEFAULT_LANGUAGE = 'ENGLISH'
LANGUAGE_CONFIG_KEY = 'g_language'

SUPPORTED_LANGUAGES = frozenset({
    'CHINESE_(SIMPLIFIED)',
    'CHINESE_(TRADITIONAL)',
    'ENGLISH',
    'FRENCH_(FRANCE)',
    'GERMAN_(GERMANY)',
    'ITALIAN_(ITALY)',
    'JAPANESE_(JAPAN)',
    'KOREAN_(SOUTH_KOREA)',
    'POLISH_(POLAND)',
    'PORTUGUESE_(BRAZIL)',
    'SPANISH_(LATIN_AMERICA)',
    'SPANISH_(SPAIN)',
})

INI_COMMENT_PREFIXES = ('--', '//', '#')
UI_KEY_PREFIX = 'ui_'
LOCALIZATION_KEY_MARKER = '@'

# ── Input Tokens ─────────────────────────────────────────────────────────
#
# Binding strings in the game data are lowercase; comparisons are done on
# the upper-cased value.

MODIFIER_KEYS = frozenset({'LALT', 'RALT', 'LSHIFT', 'RSHIFT', 'LCTRL', 'RCTRL'})

HMD_PREFIX = 'HMD_'
MOUSE_WHEEL_PREFIX = 'MWHEEL'
MOUSE_AXIS_PREFIX = 'MAXIS_'

# Contained anywhere in the token (mouse1, mouse1_2, ...)
MOUSE_BUTTON_TOKENS = ('MOUSE1', 'MOUSE2', 'MOUSE3', 'MOUSE4', 'MOUSE5')
# Must match the whole token
MOUSE_BUTTON_ALIASES = frozenset({'LMB', 'RMB', 'MMB'})

TOGGLE_MARKER = 'toggle'

# Override profile rebind prefixes → binding slot
REBIND_PREFIX_TO_SLOT: dict[str, str] = {
    'kb': 'keyboard',
    'mo': 'mouse',
    'js': 'joystick',
    'gp': 'gamepad',
}

BINDING_SLOTS = ('keyboard', 'mouse', 'joystick', 'gamepad')

# ── Output ───────────────────────────────────────────────────────────────

OUTPUT_SCHEMA_VERSION = 2
