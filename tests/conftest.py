"""Shared test fixtures."""

import io
import struct
import zipfile
import zlib

import pytest
import zstandard
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from sc_keybindings.domain.constants import P4K_ENCRYPTION_KEY, ZIP_ENCRYPTED_FLAG, ZIP_ZSTANDARD
from sc_keybindings.file_system import FileInfo, FileSystem


# ── Sample XML Content ───────────────────────────────────────────────────

PROFILE_XML = """\
<profile version="1" optionsVersion="2" rebindVersion="2">
  <ActivationModes>
    <ActivationMode name="tap" onPress="0" onHold="0" onRelease="1" multiTap="1" multiTapBlock="1" pressTriggerThreshold="-1" releaseTriggerThreshold="0.25" releaseTriggerDelay="0" retriggerable="0" />
    <ActivationMode name="press" onPress="1" onHold="0" onRelease="0" multiTap="1" multiTapBlock="1" pressTriggerThreshold="-1" releaseTriggerThreshold="-1" releaseTriggerDelay="0" retriggerable="0" />
    <ActivationMode name="delayed_press" onPress="1" onHold="0" onRelease="1" multiTap="1" multiTapBlock="1" pressTriggerThreshold="0.25" releaseTriggerThreshold="-1" releaseTriggerDelay="0" retriggerable="0" />
    <ActivationMode name="hold" onPress="1" onHold="1" onRelease="1" multiTap="1" multiTapBlock="1" pressTriggerThreshold="-1" releaseTriggerThreshold="-1" releaseTriggerDelay="0" retriggerable="1" />
    <ActivationMode name="hold_no_retrigger" onPress="1" onHold="0" onRelease="1" multiTap="1" multiTapBlock="1" pressTriggerThreshold="-1" releaseTriggerThreshold="-1" releaseTriggerDelay="0" retriggerable="0" />
    <ActivationMode name="double_tap" onPress="1" onHold="0" onRelease="0" multiTap="2" multiTapBlock="1" pressTriggerThreshold="-1" releaseTriggerThreshold="-1" releaseTriggerDelay="0" retriggerable="0" />
  </ActivationModes>
  <actionmap name="spaceship_general" version="1" UILabel="@ui_CGSpaceFlightGeneral" UICategory="@ui_CCSpaceFlight">
    <action name="v_toggle_landing_system" onPress="1" UILabel="@ui_CIToggleLandingSystem" UIDescription="@ui_CIToggleLandingSystemDesc" keyboard="n" />
    <action name="v_eject" activationMode="delayed_press_long" UILabel="@ui_CIEject" keyboard="ralt+y" />
    <action name="v_jump" onPress="1" UILabel="@ui_CIJump" keyboard="space" />
    <action name="v_attack1" onPress="1" onRelease="1" UILabel="@ui_CIAttack1" keyboard="mouse1" />
    <action name="v_boost" onPress="1" onHold="1" onRelease="1" retriggerable="1" UILabel="@ui_CIBoost">
      <keyboard>
        <inputdata input="lshift+b" />
      </keyboard>
      <gamepad>
        <inputdata input="shoulderl" />
      </gamepad>
    </action>
    <action name="v_view_look_behind" UILabel="@ui_CILookBehind" keyboard="hmd_look" />
    <action name="v_no_label" keyboard="x" />
  </actionmap>
  <actionmap name="player" version="1" UILabel="@ui_CGOpticalTracking">
    <action name="pl_modifier" onPress="1" UILabel="@ui_CIModifier" keyboard="lalt" />
    <action name="pl_unbound" onPress="1" UILabel="@ui_CIUnbound" />
  </actionmap>
</profile>
"""

GLOBAL_INI = """\
\ufeff-- header comment
ui_CGSpaceFlightGeneral=Spaceship - General
ui_CCSpaceFlight=Flight
ui_CIToggleLandingSystem=Landing System (Toggle)
ui_CIToggleLandingSystemDesc=Toggles the landing gear
ui_CIJump=Jump
ui_CIAttack1=Fire
ui_CGOpticalTracking=Head Tracking
"""

ACTION_MAPS_XML = """\
<ActionMaps>
  <ActionProfiles version="1" optionsVersion="2" rebindVersion="2" profileName="default">
    <actionmap name="spaceship_general">
      <action name="v_jump">
        <rebind input="kb1_j" />
      </action>
      <action name="V_ATTACK1">
        <rebind input="mo1_mouse2" />
        <rebind input="js1_button1" />
      </action>
    </actionmap>
  </ActionProfiles>
</ActionMaps>
"""


# ── Binary XML Builder ───────────────────────────────────────────────────

NO_PARENT = 0xFFFFFFFF


class CryXmlBuilder:
    """Builds CryXmlB buffers from a tree or from raw tables.

    A tree node is ``(tag, attributes, content, children)`` with attributes
    as a dict.
    """

    def __init__(self):
        self.pool = bytearray()
        self._offsets = {}

    def string(self, value: str) -> int:
        if value not in self._offsets:
            self._offsets[value] = len(self.pool)
            self.pool += value.encode('utf-8') + b'\x00'
        return self._offsets[value]

    def pack(self, nodes, attributes=(), child_indices=(), **header) -> bytes:
        """Lay out the tables after the header; ``header`` overrides any field."""
        node_offset = 44
        attribute_offset = node_offset + 28 * len(nodes)
        child_offset = attribute_offset + 8 * len(attributes)
        string_offset = child_offset + 4 * len(child_indices)
        fields = {
            'node_table_offset': node_offset,
            'node_count': len(nodes),
            'attribute_table_offset': attribute_offset,
            'attribute_count': len(attributes),
            'child_table_offset': child_offset,
            'child_count': len(child_indices),
            'string_data_offset': string_offset,
            'string_data_size': len(self.pool),
        }
        fields.update(header)

        buf = bytearray(b'CryXmlB\x00' + b'\x00' * 4)
        buf += struct.pack('<8I', *fields.values())
        for node in nodes:
            buf += struct.pack('<IIHHIII4x', *node)
        for attribute in attributes:
            buf += struct.pack('<II', *attribute)
        for index in child_indices:
            buf += struct.pack('<I', index)
        buf += self.pool
        return bytes(buf)

    def build(self, tree) -> bytes:
        """Encode a tree with nodes numbered breadth-first."""
        flat = [(tree, NO_PARENT)]
        child_lists = []
        k = 0
        while k < len(flat):
            node, _ = flat[k]
            start = len(flat)
            flat.extend((child, k) for child in node[3])
            child_lists.append(list(range(start, len(flat))))
            k += 1

        nodes, attributes, child_indices = [], [], []
        for k, ((tag, attrs, content, _), parent) in enumerate(flat):
            first_attribute = len(attributes)
            for key, value in attrs.items():
                attributes.append((self.string(key), self.string(value)))
            first_child = len(child_indices)
            child_indices.extend(child_lists[k])
            nodes.append((
                self.string(tag), self.string(content), len(attrs), len(child_lists[k]),
                parent, first_attribute, first_child,
            ))
        return self.pack(nodes, attributes, child_indices)


# ── In-memory File System ────────────────────────────────────────────────


class MemoryFileSystem(FileSystem):
    """FileSystem double keeping file contents and timestamps in a dict."""

    def __init__(self):
        self.files: dict[str, bytes] = {}
        self.mtimes: dict[str, int] = {}
        self._clock = 1_700_000_000_000_000_000

    def add(self, path: str, content, mtime_ns: int | None = None) -> str:
        if isinstance(content, str):
            content = content.encode('utf-8')
        self.files[path] = content
        if mtime_ns is None:
            self._clock += 1_000_000_000
            mtime_ns = self._clock
        self.mtimes[path] = mtime_ns
        return path

    def remove(self, path: str) -> None:
        self.files.pop(path, None)
        self.mtimes.pop(path, None)

    def file_exists(self, path: str) -> bool:
        return path in self.files

    def read_all_text(self, path: str) -> str:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path].decode('utf-8-sig')

    def read_all_lines(self, path: str) -> list[str]:
        return self.read_all_text(path).splitlines()

    def open_read(self, path: str):
        if path not in self.files:
            raise FileNotFoundError(path)
        return io.BytesIO(self.files[path])

    def get_file_info(self, path: str) -> FileInfo:
        if path not in self.files:
            raise FileNotFoundError(path)
        return FileInfo(size=len(self.files[path]), last_write_ns=self.mtimes[path])


def zip_bytes(entries: dict) -> bytes:
    """Zip ``entries`` (name → str or bytes) into an in-memory archive."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, 'w', compression=zipfile.ZIP_DEFLATED) as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return buf.getvalue()


# ── Data.p4k-style Archives ──────────────────────────────────────────────

_LOCAL_HEADER = struct.Struct('<4sHHHHHIIIHH')
_CENTRAL_HEADER = struct.Struct('<4sHHHHHHIIIHHHHHII')
_END_OF_CENTRAL_DIRECTORY = struct.Struct('<4sHHHHIIH')


def p4k_encrypt(payload: bytes) -> bytes:
    """Zero-pad to the AES block size and encrypt with the archive key."""
    payload += b'\x00' * (-len(payload) % 16)
    encryptor = Cipher(algorithms.AES(P4K_ENCRYPTION_KEY), modes.CBC(bytes(16))).encryptor()
    return encryptor.update(payload) + encryptor.finalize()


def p4k_bytes(entries: dict, encrypted=(), flagged=True, signature=b'PK\x03\x14') -> bytes:
    """Build an archive of Zstandard entries the way Data.p4k stores them.

    Names listed in ``encrypted`` are AES-encrypted; ``flagged`` controls
    whether those entries also carry the zip encryption flag. A
    ``(payload, size)`` value is stored verbatim as the compressed stream.
    """
    buf = io.BytesIO()
    central = []
    for name, content in entries.items():
        if isinstance(content, tuple):
            payload, size = content
            crc = 0
        else:
            if isinstance(content, str):
                content = content.encode('utf-8')
            payload = zstandard.ZstdCompressor().compress(content)
            size = len(content)
            crc = zlib.crc32(content)
        flags = 0
        if name in encrypted:
            payload = p4k_encrypt(payload)
            if flagged:
                flags = ZIP_ENCRYPTED_FLAG
        raw_name = name.encode('utf-8')
        offset = buf.tell()
        buf.write(_LOCAL_HEADER.pack(signature, 20, flags, ZIP_ZSTANDARD, 0, 0x21, crc,
                                     len(payload), size, len(raw_name), 0))
        buf.write(raw_name)
        buf.write(payload)
        central.append(_CENTRAL_HEADER.pack(b'PK\x01\x02', 20, 20, flags, ZIP_ZSTANDARD, 0, 0x21,
                                            crc, len(payload), size, len(raw_name), 0, 0,
                                            0, 0, 0, offset) + raw_name)
    directory_offset = buf.tell()
    for record in central:
        buf.write(record)
    buf.write(_END_OF_CENTRAL_DIRECTORY.pack(b'PK\x05\x06', 0, 0, len(central), len(central),
                                             buf.tell() - directory_offset, directory_offset, 0))
    return buf.getvalue()


# ── Fixtures ─────────────────────────────────────────────────────────────


@pytest.fixture
def tmp_xml(tmp_path):
    """Write XML content to a temp file and return its path."""
    def _write(content: str, filename: str = "test.xml") -> str:
        path = tmp_path / filename
        path.write_text(content, encoding="utf-8")
        return str(path)
    return _write


@pytest.fixture
def cryxml():
    """Return a fresh CryXmlBuilder."""
    return CryXmlBuilder()


@pytest.fixture
def memory_fs():
    """An empty in-memory file system."""
    return MemoryFileSystem()


@pytest.fixture
def make_archive(tmp_path):
    """Write a zip archive to disk and return its path."""
    def _write(entries: dict, filename: str = "Data.p4k") -> str:
        path = tmp_path / filename
        path.write_bytes(zip_bytes(entries))
        return str(path)
    return _write


@pytest.fixture
def make_p4k(tmp_path):
    """Write a Data.p4k-style archive to disk and return its path."""
    def _write(entries: dict, filename: str = "Data.p4k", **kwargs) -> str:
        path = tmp_path / filename
        path.write_bytes(p4k_bytes(entries, **kwargs))
        return str(path)
    return _write


@pytest.fixture
def sample_profile_cryxml():
    """A two-action default profile encoded as CryXmlB."""
    tree = ('profile', {'version': '1'}, '', [
        ('ActivationModes', {}, '', [
            ('ActivationMode', {'name': 'press', 'onPress': '1', 'onHold': '0',
                                'onRelease': '0', 'retriggerable': '0'}, '', []),
        ]),
        ('actionmap', {'name': 'spaceship_movement', 'UILabel': '@ui_CGSpaceFlightMovement',
                       'UICategory': '@ui_CCSpaceFlight'}, '', [
            ('action', {'name': 'v_jump', 'onPress': '1', 'UILabel': '@ui_CIJump',
                        'keyboard': 'space'}, '', []),
            ('action', {'name': 'v_attack1', 'onPress': '1', 'UILabel': '@ui_CIAttack1',
                        'keyboard': 'mouse1'}, '', []),
        ]),
    ])
    return CryXmlBuilder().build(tree)
