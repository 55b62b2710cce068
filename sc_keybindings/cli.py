"""CLI for sc-keybindings."""

import argparse
import logging
import os
import sys
import threading

from sc_keybindings.archive_reader import ArchiveReader
from sc_keybindings.domain.bindings import is_modifier_only
from sc_keybindings.domain.constants import (
    ACTION_MAPS_FILENAME,
    DEFAULT_PROFILE_FILENAME,
    KEYBINDING_CONFIG_DIRECTORY,
    USER_PROFILE_DIRECTORY,
)
from sc_keybindings.domain.models import (
    BindingRecord,
    ExtractOptions,
    Installation,
    ProcessResult,
)
from sc_keybindings.file_system import FileSystem, LocalFileSystem
from sc_keybindings.metadata import KeybindingMetadataService
from sc_keybindings.output.json_dumper import JSONDumper
from sc_keybindings.parsers import ActionMapParser, CryXmlParser, UserOverrideParser
from sc_keybindings.resolution.localization_loader import LocalizationLoader, normalize_language
from sc_keybindings.resolution.localization_resolver import LocalizationResolver
from sc_keybindings.resolution.override_resolver import OverrideResolver

logger = logging.getLogger(__name__)

CANCELLED = "Extraction cancelled"


def _cancelled(cancel_event: threading.Event | None) -> bool:
    return cancel_event is not None and cancel_event.is_set()


def decode_profile(data: bytes) -> tuple[str | None, str | None]:
    """Turn default profile bytes into XML text.

    Returns (xml_text, None) on success or (None, reason). Plain-text XML
    is passed through unchanged.
    """
    parser = CryXmlParser()
    if not parser.is_cryxml(data):
        head = data[:64].lstrip(b'\xef\xbb\xbf \t\r\n')
        if head.startswith(b'<'):
            try:
                return data.decode('utf-8-sig'), None
            except UnicodeDecodeError as e:
                return None, str(e)

    result = parser.convert(data)
    if not result.is_success:
        return None, result.error
    return result.xml, None


def filter_actions(actions: list[BindingRecord]) -> list[BindingRecord]:
    """Keep records that are bound or fully labelled, minus bare-modifier keyboard bindings."""
    kept = []
    for record in actions:
        labelled = bool(record.label.strip()) and bool(record.category.strip())
        if not record.bindings.has_any() and not labelled:
            continue
        if is_modifier_only(record.bindings.keyboard):
            continue
        kept.append(record)
    return kept


def _apply_localization(actions: list[BindingRecord], language: str, reader: ArchiveReader,
                        channel_path: str | None, fs: FileSystem) -> None:
    """Translate labels in place. Failures leave the records untranslated."""
    try:
        lookup = LocalizationLoader(fs).load(language, reader, channel_path)
        LocalizationResolver(lookup).apply(actions)
    except Exception as e:
        logger.warning("Localization failed, keeping untranslated labels: %s", e, exc_info=True)


def _apply_overrides(actions: list[BindingRecord], profile_path: str | None,
                     fs: FileSystem) -> None:
    """Merge the user's rebinds in place. Failures leave the default bindings."""
    if not profile_path:
        return
    try:
        overrides = UserOverrideParser(fs).parse(profile_path)
        if overrides is None or not overrides.has_overrides:
            logger.debug("No user overrides in %s", profile_path)
            return
        OverrideResolver(overrides).apply(actions)
    except Exception as e:
        logger.warning("Applying overrides from %s failed, keeping default bindings: %s",
                       profile_path, e, exc_info=True)


def process_keybindings(
    installation: Installation,
    output_path: str,
    options: ExtractOptions | None = None,
    file_system: FileSystem | None = None,
    cancel_event: threading.Event | None = None,
) -> ProcessResult:
    """Main orchestration: archive -> default profile -> records -> JSON output."""
    options = options or ExtractOptions()
    fs = file_system or LocalFileSystem()

    if _cancelled(cancel_event):
        return ProcessResult.failure(CANCELLED)

    reader = ArchiveReader(fs)
    try:
        if not reader.open(installation.archive_path):
            logger.error("Failed to open archive %s", installation.archive_path)
            return ProcessResult.failure("Failed to open archive")

        if _cancelled(cancel_event):
            return ProcessResult.failure(CANCELLED)

        entries = reader.scan_directory(KEYBINDING_CONFIG_DIRECTORY, DEFAULT_PROFILE_FILENAME)
        data = reader.read_bytes(entries[0]) if entries else None
        if not data:
            logger.error("%s not found in %s", DEFAULT_PROFILE_FILENAME, installation.archive_path)
            return ProcessResult.failure("Failed to extract default profile from archive")

        xml_text, error = decode_profile(data)
        if xml_text is None:
            logger.error("Failed to decode %s: %s", entries[0].path, error)
            return ProcessResult.failure(f"Failed to decode binary XML: {error}")

        parsed = ActionMapParser().parse(xml_text)
        if not parsed.is_success:
            logger.error("Failed to parse %s: %s", entries[0].path, parsed.error)
            return ProcessResult.failure(f"Failed to parse default profile: {parsed.error}")
        if not parsed.actions:
            return ProcessResult.failure("No actions found in default profile")
        actions = parsed.actions

        metadata = KeybindingMetadataService(fs)
        if options.language:
            language = normalize_language(options.language)
        else:
            language = metadata.detect_language(installation.channel_path)

        if _cancelled(cancel_event):
            return ProcessResult.failure(CANCELLED)

        _apply_localization(actions, language, reader, installation.channel_path, fs)
        _apply_overrides(actions, installation.override_profile_path, fs)

        actions = filter_actions(actions)

        if _cancelled(cancel_event):
            return ProcessResult.failure(CANCELLED)

        try:
            fingerprint = metadata.build_fingerprint(installation, language)
            JSONDumper(pretty=options.pretty).write(
                output_path, fingerprint, actions, parsed.activation_modes,
            )
        except OSError as e:
            logger.error("Failed to write %s: %s", output_path, e)
            return ProcessResult.failure(f"Failed to write output: {e}")

        logger.info("Wrote %d actions to %s", len(actions), output_path)
        return ProcessResult.success(language, message=f"Extracted {len(actions)} actions")

    except Exception as e:
        logger.error("Keybinding extraction failed: %s", e, exc_info=True)
        return ProcessResult.failure(str(e))
    finally:
        reader.close()


def refresh_keybindings(
    installation: Installation,
    output_path: str,
    options: ExtractOptions | None = None,
    file_system: FileSystem | None = None,
    cancel_event: threading.Event | None = None,
) -> ProcessResult:
    """Regenerate ``output_path`` when stale (or when forced)."""
    options = options or ExtractOptions()
    fs = file_system or LocalFileSystem()
    metadata = KeybindingMetadataService(fs)

    language = normalize_language(options.language) if options.language else None
    if not options.force and not metadata.needs_regeneration(output_path, installation, language):
        current = language or metadata.detect_language(installation.channel_path)
        logger.debug("%s is up to date", output_path)
        return ProcessResult.success(current, message="Output is up to date", regenerated=False)

    return process_keybindings(installation, output_path, options, fs, cancel_event)


def _build_installation(args) -> Installation:
    """Installation from CLI arguments; the profile defaults to the channel's actionmaps.xml."""
    channel = args.channel or os.path.dirname(os.path.abspath(args.archive))
    profile = args.profile
    if not profile:
        candidate = os.path.join(channel, USER_PROFILE_DIRECTORY, ACTION_MAPS_FILENAME)
        if os.path.isfile(candidate):
            profile = candidate
    return Installation(archive_path=args.archive, channel_path=channel,
                        override_profile_path=profile)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog='sc-keybindings',
                                     description='Star Citizen keybinding extractor')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command')

    # extract command
    extract_parser = subparsers.add_parser('extract', help='Extract keybindings to JSON')
    extract_parser.add_argument('archive', help='Path to Data.p4k')
    extract_parser.add_argument('output', help='Output JSON file')
    extract_parser.add_argument('--channel', help='Game channel directory (default: archive directory)')
    extract_parser.add_argument('--profile', help='Path to actionmaps.xml with user overrides')
    extract_parser.add_argument('--language', help='Language override (default: from user.cfg)')
    extract_parser.add_argument('--force', action='store_true', help='Regenerate even if up to date')
    extract_parser.add_argument('--no-pretty', action='store_true', help='Disable pretty printing')

    # check command
    check_parser = subparsers.add_parser('check', help='Report whether the output is stale')
    check_parser.add_argument('archive', help='Path to Data.p4k')
    check_parser.add_argument('output', help='Output JSON file')
    check_parser.add_argument('--channel', help='Game channel directory (default: archive directory)')
    check_parser.add_argument('--profile', help='Path to actionmaps.xml with user overrides')

    # decode command
    decode_parser = subparsers.add_parser('decode', help='Convert a binary XML file to text')
    decode_parser.add_argument('input', help='CryXmlB file')
    decode_parser.add_argument('output', nargs='?', help='Output file (default: stdout)')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    if args.command == 'extract':
        if not os.path.isfile(args.archive):
            print(f"Error: {args.archive} not found", file=sys.stderr)
            return 1

        options = ExtractOptions(
            pretty=not args.no_pretty,
            language=args.language,
            force=args.force,
        )
        print(f"Extracting {args.archive}...")
        result = refresh_keybindings(_build_installation(args), args.output, options)
        if not result.is_success:
            print(f"Error: {result.message}", file=sys.stderr)
            return 1
        if result.regenerated:
            print(f"Done! {result.message} ({result.language})")
        else:
            print(f"Up to date ({result.language})")
        print(f"Output: {args.output}")
        return 0

    elif args.command == 'check':
        stale = KeybindingMetadataService().needs_regeneration(
            args.output, _build_installation(args))
        print('stale' if stale else 'up to date')
        return 1 if stale else 0

    elif args.command == 'decode':
        try:
            with open(args.input, 'rb') as f:
                data = f.read()
        except OSError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        result = CryXmlParser().convert(data)
        if not result.is_success:
            print(f"Error: {result.error}", file=sys.stderr)
            return 1
        if args.output:
            with open(args.output, 'w', encoding='utf-8') as f:
                f.write(result.xml)
        else:
            print(result.xml)
        return 0

    else:
        parser.print_help()
        return 0


if __name__ == '__main__':
    sys.exit(main())
