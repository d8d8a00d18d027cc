#!/usr/bin/env python3
"""Utility helpers for reading and rebuilding POTATO70 ``.bundle`` archives.

Bundles pack the game's assets behind a 32 byte header and a directory of
fixed-size 320 byte records.  Every payload starts on a 4096 byte boundary.
Existing tools can only re-import modded files that are no larger than the
original entry; this module rebuilds the whole archive instead so replaced
payloads may grow or shrink freely.

Three subcommands are provided:

```
python bundle.py repack <input.bundle> <output.bundle> <mod_dir> [-r]
python bundle.py list <input.bundle>
python bundle.py extract <input.bundle> <output_dir>
```

*repack* loads every payload, swaps in any file found below ``<mod_dir>``
whose relative path matches an entry name, and writes a fresh archive.  With
``-r`` the original bundle is renamed to ``<input>.bundle.bak`` and the new
archive takes its place.

Large parts of the format are still not understood.  The header's second
size field, the per-entry modify time, the unknown field and the content
hash are all carried over untouched; the game does not validate the hash.
Entries flagged with compression type 1 cannot be decoded here, so their raw
bytes are copied through while the directory keeps advertising the original
compression type.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Callable, Dict, Iterable, List, NamedTuple, Optional, Union

logger = logging.getLogger(__name__)

BUNDLE_MAGIC = b"POTATO70"
HEADER_SIZE = 32
NAME_LENGTH = 0x100
HASH_LENGTH = 16
ALIGNMENT_TARGET = 4096
FOOTER_ALIGNMENT = 16
FOOTER_DATA = b"AlignmentUnused"

# magic, totalSize, secondarySize, dataBlockOffset, reserved
HEADER_STRUCT = struct.Struct("<8sIII12s")
# reserved, uncompressedSize, compressedSize, payloadOffset, modifyTime
ENTRY_SIZES_STRUCT = struct.Struct("<IIIIQ")
# reserved, unknownField, compressionId
ENTRY_TAIL_STRUCT = struct.Struct("<16sII")
ENTRY_SIZE = NAME_LENGTH + HASH_LENGTH + ENTRY_SIZES_STRUCT.size + ENTRY_TAIL_STRUCT.size

U32 = struct.Struct("<I")
U64 = struct.Struct("<Q")

COMPRESSION_NONE = 0
COMPRESSION_UNDECODED = 1

# Override payloads share the signed 32-bit limit of the size fields.
MAX_OVERRIDE_SIZE = 0x7FFFFFFF

PROGRESS_INTERVAL = 100

PAD_FOOTER_DEFAULT = os.environ.get("BUNDLE_PAD_FOOTER", "0").lower() in {"1", "true", "yes"}


class BundleError(RuntimeError):
    """Raised when a bundle cannot be read or written at all."""


def normalize_relative_path(name: str) -> str:
    """Return a normalised relative path using forward slashes."""

    normalised = name.replace("\\", "/")
    return normalised.lstrip("/")


def format_bytes(data: bytes) -> str:
    return " ".join(f"{value:02X}" for value in data)


# ---------------------------------------------------------------------------
# Primitive codec
# ---------------------------------------------------------------------------


class ByteReader:
    """Sequential little-endian reader that never aborts on a short read.

    ``bytes_read`` counts the octets actually obtained from the stream and is
    only used to make diagnostics easier to follow.
    """

    def __init__(self, stream: BinaryIO) -> None:
        self.stream = stream
        self.bytes_read = 0

    def read_bytes(self, count: int) -> bytes:
        """Return exactly ``count`` bytes, zero-filling anything past EOF."""

        if count <= 0:
            return b""

        buffer = bytearray(count)
        found = 0
        while found < count:
            chunk = self.stream.read(count - found)
            if not chunk:
                logger.error(
                    "Failed to read bytes; lookingFor=%d, totalFound=%d, allBytesRead=%d",
                    count,
                    found,
                    self.bytes_read + found,
                )
                break
            buffer[found : found + len(chunk)] = chunk
            found += len(chunk)

        self.bytes_read += found
        return bytes(buffer)

    def skip(self, count: int) -> int:
        """Discard up to ``count`` bytes and return how many were consumed."""

        skipped = 0
        while skipped < count:
            chunk = self.stream.read(min(count - skipped, 1024 * 1024))
            if not chunk:
                break
            skipped += len(chunk)
        self.bytes_read += skipped
        return skipped

    def read_u32(self) -> int:
        return U32.unpack(self.read_bytes(U32.size))[0]

    def read_u64(self) -> int:
        return U64.unpack(self.read_bytes(U64.size))[0]

    def read_fixed_string(self, length: int = NAME_LENGTH) -> str:
        return decode_fixed_string(self.read_bytes(length))


def decode_fixed_string(raw: bytes) -> str:
    """Decode a zero-terminated field; anything after the first NUL is ignored."""

    text = raw.split(b"\x00", 1)[0]
    return text.decode("utf-8", errors="surrogateescape")


def encode_fixed_string(text: str, length: int = NAME_LENGTH) -> bytes:
    """Return ``text`` NUL padded to ``length`` bytes.

    Text that does not fit is truncated to ``length - 1`` bytes so the field
    always keeps its terminator.
    """

    data = text.encode("utf-8", errors="surrogateescape")
    if len(data) >= length:
        logger.warning(
            "Payload data exceeds maximum size of a fixed-length string, it will be truncated; text=%s",
            text,
        )
        data = data[: length - 1]
    return data.ljust(length, b"\x00")


def write_u32(out: BinaryIO, value: int) -> int:
    return out.write(U32.pack(value & 0xFFFFFFFF))


def write_u64(out: BinaryIO, value: int) -> int:
    return out.write(U64.pack(value & 0xFFFFFFFFFFFFFFFF))


def write_fixed_string(out: BinaryIO, text: str, length: int = NAME_LENGTH) -> int:
    return out.write(encode_fixed_string(text, length))


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class BundleHeader:
    magic: bytes = BUNDLE_MAGIC
    total_size: int = 0
    secondary_size: int = 0
    data_offset: int = 0
    reserved: bytes = bytes(12)

    @property
    def directory_end(self) -> int:
        return self.data_offset + HEADER_SIZE


@dataclass
class BundleEntry:
    """One directory record plus the payload loaded for it."""

    name: str
    hash: bytes = bytes(HASH_LENGTH)
    uncompressed_size: int = 0
    compressed_size: int = 0
    offset: int = 0
    modify_time: int = 0
    unknown: int = 0
    compression: int = COMPRESSION_NONE
    data: Optional[bytes] = field(default=None, repr=False)
    # Compression id written to the directory when the payload is copied
    # through without being decoded.
    declared_compression: Optional[int] = None

    @property
    def written_compression(self) -> int:
        if self.declared_compression is not None:
            return self.declared_compression
        return self.compression

    @property
    def stored_size(self) -> int:
        if self.data is not None:
            return len(self.data)
        return self.compressed_size

    def describe(self) -> str:
        return (
            f"name={self.name}, size={self.uncompressed_size}, storedSize={self.compressed_size}, "
            f"compressionAlgo={self.compression}, offset={self.offset}, modified={self.modify_time:x}, "
            f"unknownValue={self.unknown}, aligned={self.offset % ALIGNMENT_TARGET == 0}, "
            f"hash: {format_bytes(self.hash)}"
        )


@dataclass
class Bundle:
    header: BundleHeader
    # Directory order; this is the order records are written back in.
    entries: List[BundleEntry] = field(default_factory=list)

    def find(self, name: str) -> Optional[BundleEntry]:
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None


# ---------------------------------------------------------------------------
# Directory codec
# ---------------------------------------------------------------------------


def read_header(reader: ByteReader) -> BundleHeader:
    magic, total_size, secondary_size, data_offset, reserved = HEADER_STRUCT.unpack(
        reader.read_bytes(HEADER_STRUCT.size)
    )
    if magic != BUNDLE_MAGIC:
        logger.warning("Unexpected bundle magic %r (expected %r)", magic, BUNDLE_MAGIC)
    return BundleHeader(magic, total_size, secondary_size, data_offset, reserved)


def encode_header(header: BundleHeader) -> bytes:
    return HEADER_STRUCT.pack(
        BUNDLE_MAGIC,
        header.total_size & 0xFFFFFFFF,
        header.secondary_size & 0xFFFFFFFF,
        header.data_offset & 0xFFFFFFFF,
        header.reserved,
    )


def read_entry(reader: ByteReader) -> BundleEntry:
    """Decode a single 320 byte directory record."""

    name = reader.read_fixed_string(NAME_LENGTH)
    entry_hash = reader.read_bytes(HASH_LENGTH)
    _reserved, uncompressed, compressed, offset, modify_time = ENTRY_SIZES_STRUCT.unpack(
        reader.read_bytes(ENTRY_SIZES_STRUCT.size)
    )
    _reserved2, unknown, compression = ENTRY_TAIL_STRUCT.unpack(
        reader.read_bytes(ENTRY_TAIL_STRUCT.size)
    )
    return BundleEntry(
        name=name,
        hash=entry_hash,
        uncompressed_size=uncompressed,
        compressed_size=compressed,
        offset=offset,
        modify_time=modify_time,
        unknown=unknown,
        compression=compression,
    )


def encode_entry(entry: BundleEntry) -> bytes:
    """Encode ``entry`` using its current offset, sizes and compression."""

    return b"".join(
        (
            encode_fixed_string(entry.name, NAME_LENGTH),
            bytes(entry.hash[:HASH_LENGTH]).ljust(HASH_LENGTH, b"\x00"),
            ENTRY_SIZES_STRUCT.pack(
                0,
                entry.uncompressed_size & 0xFFFFFFFF,
                entry.compressed_size & 0xFFFFFFFF,
                entry.offset & 0xFFFFFFFF,
                entry.modify_time & 0xFFFFFFFFFFFFFFFF,
            ),
            ENTRY_TAIL_STRUCT.pack(
                bytes(16), entry.unknown & 0xFFFFFFFF, entry.written_compression & 0xFFFFFFFF
            ),
        )
    )


def read_directory(reader: ByteReader, header: BundleHeader) -> List[BundleEntry]:
    """Read records until the data block declared by ``header`` is reached."""

    entries: List[BundleEntry] = []
    position = HEADER_SIZE
    while position < header.directory_end:
        entry = read_entry(reader)
        position += ENTRY_SIZE
        logger.debug("Read file descriptor; %s", entry.describe())
        entries.append(entry)
    return entries


# ---------------------------------------------------------------------------
# Offset resolution
# ---------------------------------------------------------------------------


def next_aligned_position(position: int, alignment: int = ALIGNMENT_TARGET) -> int:
    """Return the first multiple of ``alignment`` strictly after ``position``."""

    return (position // alignment) * alignment + alignment


def resolve_offset(entry: BundleEntry, minimum: int) -> int:
    """Return the payload offset of ``entry``, pushing it past ``minimum`` if needed.

    Offsets only ever move forward.  Once an entry satisfies a minimum it keeps
    that offset for every later call with the same or a smaller minimum.
    """

    if entry.offset >= minimum:
        return entry.offset

    new_offset = next_aligned_position(minimum)
    logger.info(
        "Computed new offset for file: %s, oldOffset=%d, newOffset=%d",
        entry.name,
        entry.offset,
        new_offset,
    )
    entry.offset = new_offset
    return new_offset


def sorted_by_offset(entries: Iterable[BundleEntry]) -> List[BundleEntry]:
    """Return payload order; empty payloads sort ahead of others sharing their offset."""

    return sorted(entries, key=lambda entry: (entry.offset, entry.stored_size > 0))


# ---------------------------------------------------------------------------
# Payload loading
# ---------------------------------------------------------------------------


class PayloadHandling(NamedTuple):
    """How a payload read from disk is carried through a rebuild.

    ``kind`` is ``"stored"`` when the bytes are used as-is, or
    ``"passthrough"`` when they are compressed in a way this module cannot
    decode; ``declared_id`` then holds the compression id to keep advertising.
    """

    kind: str
    declared_id: Optional[int] = None


def classify_compression(compression_id: int) -> PayloadHandling:
    if compression_id == COMPRESSION_NONE:
        return PayloadHandling("stored")
    return PayloadHandling("passthrough", compression_id)


def load_payloads(reader: ByteReader, entries: List[BundleEntry], position: int) -> int:
    """Attach raw payloads to ``entries`` reading in ascending offset order.

    ``position`` is the absolute stream position of ``reader`` (the end of the
    directory).  Returns the stream position after the last payload.
    """

    total = len(entries)
    logger.info("Loading %d files, this may take awhile...", total)
    for loaded, entry in enumerate(sorted_by_offset(entries), start=1):
        # Gap bytes are alignment padding.
        gap = resolve_offset(entry, position) - position
        reader.skip(gap)
        position += gap

        raw = reader.read_bytes(entry.compressed_size)
        position += len(raw)

        handling = classify_compression(entry.compression)
        if handling.kind == "passthrough":
            if entry.compression == COMPRESSION_UNDECODED:
                logger.debug("Compressed payload left as-is: file=%s", entry.name)
            else:
                logger.warning(
                    "Unsupported compression algorithm: file=%s, algo=%d",
                    entry.name,
                    entry.compression,
                )
            entry.declared_compression = handling.declared_id
            entry.compression = COMPRESSION_NONE
        entry.data = raw

        if loaded % PROGRESS_INTERVAL == 0:
            logger.info("Loaded %d / %d files...", loaded, total)

    return position


def parse_bundle(stream: BinaryIO) -> Bundle:
    """Parse the header, directory and every payload from ``stream``."""

    reader = ByteReader(stream)
    header = read_header(reader)
    entries = read_directory(reader, header)
    position = HEADER_SIZE + len(entries) * ENTRY_SIZE
    load_payloads(reader, entries, position)
    logger.info("Done loading %d files", len(entries))
    return Bundle(header, entries)


def read_bundle(path: Path) -> Bundle:
    try:
        with Path(path).open("rb") as handle:
            logger.info("Reading bundle '%s'", path)
            bundle = parse_bundle(handle)
    except OSError as exc:
        raise BundleError(f"unable to read bundle {path}: {exc}") from exc

    header = bundle.header
    logger.info(
        "size=%d, dummySize=%d, dataOffset=%d, otherHeaderData: %s",
        header.total_size,
        header.secondary_size,
        header.data_offset,
        format_bytes(header.reserved),
    )
    return bundle


# ---------------------------------------------------------------------------
# Overrides
# ---------------------------------------------------------------------------

OverrideSource = Union[bytes, bytearray, memoryview, str, os.PathLike]
OverrideLookup = Callable[[str], Optional[OverrideSource]]


class DirectoryOverrideSource:
    """Look up replacement files below ``root`` by entry name."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path_for(self, name: str) -> Path:
        relative = normalize_relative_path(name)
        return self.root / Path(*relative.split("/")) if relative else self.root

    def __call__(self, name: str) -> Optional[Path]:
        candidate = self.path_for(name)
        if candidate.is_file():
            return candidate
        return None


def _read_override(source: OverrideSource) -> bytes:
    if isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
    else:
        path = Path(source)
        size = path.stat().st_size
        if size > MAX_OVERRIDE_SIZE:
            raise BundleError(f"{path} is too large ({size} bytes) to store in a bundle")
        data = path.read_bytes()

    if len(data) > MAX_OVERRIDE_SIZE:
        raise BundleError(f"override payload is too large ({len(data)} bytes)")
    return data


def apply_override(entry: BundleEntry, lookup: OverrideLookup) -> bool:
    """Replace the payload of ``entry`` if ``lookup`` provides one.

    The hash is left alone.  A source that cannot be read is logged and the
    loaded payload is kept.
    """

    source = lookup(entry.name)
    if source is None:
        return False

    logger.info("Overriding file %s with content from '%s'.", entry.name, _describe_source(source))
    try:
        data = _read_override(source)
    except (OSError, BundleError):
        logger.exception("Failed to override file %s", entry.name)
        return False

    entry.declared_compression = None
    entry.compression = COMPRESSION_NONE
    entry.data = data
    entry.uncompressed_size = len(data)
    entry.compressed_size = len(data)
    return True


def _describe_source(source: OverrideSource) -> str:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return f"<{len(source)} bytes>"
    return str(Path(source).absolute())


def apply_overrides(bundle: Bundle, lookup: OverrideLookup) -> List[str]:
    """Apply ``lookup`` to every entry in directory order; return replaced names."""

    replaced: List[str] = []
    for entry in bundle.entries:
        if apply_override(entry, lookup):
            replaced.append(entry.name)
    return replaced


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


def footer_padding(position: int) -> int:
    needed = FOOTER_ALIGNMENT - (position % FOOTER_ALIGNMENT)
    return needed if needed < FOOTER_ALIGNMENT else 0


def compute_layout(
    bundle: Bundle,
    *,
    pad_footer: bool = PAD_FOOTER_DEFAULT,
    order: Optional[List[BundleEntry]] = None,
) -> int:
    """Resolve every payload offset and return the final archive size.

    ``order`` is the payload order to lay out; pass the same list to the
    emission pass so entries pushed onto a shared offset keep their order.
    Updates ``bundle.header.data_offset`` and ``bundle.header.total_size``.
    """

    header = bundle.header
    position = HEADER_SIZE + ENTRY_SIZE * len(bundle.entries)
    if position != header.directory_end:
        logger.warning(
            "Data offset has changed! old=%d, new=%d",
            header.data_offset,
            position - HEADER_SIZE,
        )
    header.data_offset = position - HEADER_SIZE

    if order is None:
        order = sorted_by_offset(bundle.entries)
    for entry in order:
        position = resolve_offset(entry, position)
        position += entry.stored_size

    if pad_footer:
        position += footer_padding(position)

    header.total_size = position
    return position


def serialize_bundle(
    bundle: Bundle, out: BinaryIO, *, pad_footer: bool = PAD_FOOTER_DEFAULT
) -> int:
    """Write ``bundle`` to ``out`` and return the number of bytes written."""

    order = sorted_by_offset(bundle.entries)
    total_size = compute_layout(bundle, pad_footer=pad_footer, order=order)

    written = out.write(encode_header(bundle.header))
    for entry in bundle.entries:
        written += out.write(encode_entry(entry))

    for entry in order:
        padding = resolve_offset(entry, written) - written
        if padding > 0:
            written += out.write(bytes(padding))
        written += out.write(entry.data if entry.data is not None else bytes(entry.compressed_size))

    if pad_footer:
        needed = footer_padding(written)
        if needed:
            written += out.write(FOOTER_DATA[:needed])

    if written != total_size:
        raise BundleError(f"wrote {written} bytes but the layout declared {total_size}")
    return written


def _discard_partial(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


def write_bundle(bundle: Bundle, path: Path, *, pad_footer: bool = PAD_FOOTER_DEFAULT) -> int:
    """Write ``bundle`` to ``path``; nothing is left behind on failure."""

    path = Path(path)
    try:
        with path.open("wb") as handle:
            written = serialize_bundle(bundle, handle, pad_footer=pad_footer)
    except OSError as exc:
        _discard_partial(path)
        raise BundleError(f"unable to write bundle {path}: {exc}") from exc
    except BundleError:
        _discard_partial(path)
        raise

    logger.info("Bundle successfully written to %s!", path)
    return written


# ---------------------------------------------------------------------------
# High level operations
# ---------------------------------------------------------------------------


def repack_bundle(
    source: Path,
    output: Path,
    mod_root: Path,
    *,
    pad_footer: bool = PAD_FOOTER_DEFAULT,
) -> List[str]:
    """Rebuild ``source`` into ``output`` using replacements found in ``mod_root``."""

    bundle = read_bundle(source)
    logger.info("Checking for mods below %s...", mod_root)
    replaced = apply_overrides(bundle, DirectoryOverrideSource(mod_root))
    logger.info("Finished loading mods (%d replaced); writing output...", len(replaced))
    write_bundle(bundle, output, pad_footer=pad_footer)
    return replaced


def install_bundle(original: Path, rebuilt: Path) -> bool:
    """Back up ``original`` as ``*.bak`` and move ``rebuilt`` into its place."""

    original = Path(original)
    rebuilt = Path(rebuilt)
    backup = original.with_name(original.name + ".bak")
    manual = f"you can attempt a manual installation by moving '{rebuilt}' to '{original}'"

    logger.info("Replacing original bundle file...")
    if backup.exists():
        logger.warning(
            "Failed to move '%s' to '%s' (a backup already exists); %s", original, backup, manual
        )
        return False
    try:
        original.rename(backup)
    except OSError as exc:
        logger.warning("Failed to move '%s' to '%s': %s; %s", original, backup, exc, manual)
        return False

    try:
        rebuilt.rename(original)
    except OSError as exc:
        logger.warning("Failed to move '%s' to '%s': %s; %s", rebuilt, original, exc, manual)
        return False

    logger.info("Modified bundle installed successfully!")
    return True


def entry_manifest(entry: BundleEntry) -> Dict[str, object]:
    return {
        "name": entry.name,
        "relative_path": normalize_relative_path(entry.name),
        "hash": entry.hash.hex(),
        "uncompressed_size": entry.uncompressed_size,
        "compressed_size": entry.compressed_size,
        "offset": entry.offset,
        "modify_time": entry.modify_time,
        "unknown": entry.unknown,
        "compression": entry.written_compression,
    }


def list_bundle(path: Path) -> List[Dict[str, object]]:
    bundle = read_bundle(path)
    return [entry_manifest(entry) for entry in bundle.entries]


def extract_bundle(path: Path, output_dir: Path) -> Path:
    """Dump every stored payload below ``output_dir`` and write a manifest.

    Returns the path to the generated manifest file.  Payloads that use an
    undecodable compression are written exactly as stored.
    """

    bundle = read_bundle(path)
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    root = output_dir.resolve()
    targets = DirectoryOverrideSource(output_dir)

    for entry in bundle.entries:
        target = targets.path_for(entry.name)
        if root not in target.resolve().parents:
            logger.warning("Skipping entry outside of the output directory: %s", entry.name)
            continue
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(entry.data or b"")
        except OSError as exc:
            logger.warning("Skipping entry that cannot be extracted: %s (%s)", entry.name, exc)

    header = bundle.header
    manifest = {
        "bundle": Path(path).name,
        "header": {
            "total_size": header.total_size,
            "secondary_size": header.secondary_size,
            "data_offset": header.data_offset,
            "reserved": header.reserved.hex(),
        },
        "files": [entry_manifest(entry) for entry in bundle.entries],
    }
    manifest_path = output_dir / "manifest.json"
    manifest_path.write_text(json.dumps(manifest, indent=2))
    return manifest_path


# ---------------------------------------------------------------------------
# Command line
# ---------------------------------------------------------------------------


def build_cli() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Rebuild POTATO70 bundle archives with modded files")
    parser.add_argument("-v", "--verbose", action="store_true", help="log every directory record")
    parser.add_argument("-q", "--quiet", action="store_true", help="only log warnings and errors")
    subparsers = parser.add_subparsers(dest="command", required=True)

    repack_parser = subparsers.add_parser("repack", help="rebuild a bundle using files from a mod directory")
    repack_parser.add_argument("bundle", type=Path, help="path to the original .bundle file")
    repack_parser.add_argument("output", type=Path, help="path of the rebuilt bundle")
    repack_parser.add_argument(
        "mod_dir", type=Path, help="directory mirroring the bundle's internal paths"
    )
    repack_parser.add_argument(
        "-r",
        "--replace",
        action="store_true",
        help="back up the original bundle and move the output into its place",
    )
    repack_parser.add_argument(
        "--pad-footer",
        action="store_true",
        default=PAD_FOOTER_DEFAULT,
        help="pad the archive to a multiple of 16 bytes",
    )

    list_parser = subparsers.add_parser("list", help="print the bundle directory")
    list_parser.add_argument("bundle", type=Path, help="path to the .bundle file")

    extract_parser = subparsers.add_parser("extract", help="extract stored payloads and emit a manifest")
    extract_parser.add_argument("bundle", type=Path, help="path to the .bundle file")
    extract_parser.add_argument("output", type=Path, help="directory that will receive the extracted files")

    return parser


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_cli()
    args = parser.parse_args(argv)

    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    try:
        if args.command == "repack":
            replaced = repack_bundle(args.bundle, args.output, args.mod_dir, pad_footer=args.pad_footer)
            print(f"Repacked bundle written to {args.output} ({len(replaced)} file(s) replaced)")
            if args.replace and not install_bundle(args.bundle, args.output):
                return 1
        elif args.command == "list":
            for record in list_bundle(args.bundle):
                print(
                    f"{record['offset']:>10}  {record['compressed_size']:>10}  "
                    f"{record['compression']:>2}  {record['name']}"
                )
        elif args.command == "extract":
            manifest = extract_bundle(args.bundle, args.output)
            print(f"Extraction complete. Manifest written to {manifest}")
        else:  # pragma: no cover - argparse rejects unknown commands
            parser.error("unknown command")
    except BundleError as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
