"""Container framing for hcomp files.

Layout, all integers little-endian::

    0       validity byte (copy of the first packed bitstream byte)
    1       leaf count c (u16)
    3       c x (byte value u8, frequency u32), ascending byte value
    3+5c    uncompressed size (u32)
    7+5c    packed bitstream, MSB first, last byte zero-padded
"""
import io
import os
import struct
import tempfile
from contextlib import contextmanager
from typing import BinaryIO, Dict, List, Tuple

import huff
from bitio import CHUNK_SIZE, CompressorBitio

COMPRESSION_NAME = "static order 0 model with Huffman coding"

PREFIX_FMT = "<BH"
LEAF_FMT = "<BI"
SIZE_FMT = "<I"
PREFIX_SIZE = struct.calcsize(PREFIX_FMT)
LEAF_SIZE = struct.calcsize(LEAF_FMT)
SIZE_SIZE = struct.calcsize(SIZE_FMT)


class InvalidContainer(huff.HuffError, ValueError):
    pass


class ContainerOverflow(huff.HuffError, ValueError):
    pass


def header_size(leaf_count: int) -> int:
    return PREFIX_SIZE + leaf_count * LEAF_SIZE + SIZE_SIZE


def check_byte(input_file: BinaryIO, codes: Dict[int, str]) -> int:
    """First eight bits of the bitstream the source will pack into."""
    input_marker = input_file.tell()
    input_file.seek(0)
    bits = ""
    while len(bits) < 8:
        c = input_file.read(1)
        if not c:
            break
        bits += codes[c[0]]
    input_file.seek(input_marker)
    return int(bits[:8].ljust(8, "0"), 2)


def output_counts(output_file: BinaryIO, counts: List[int], check_num: int, total: int) -> int:
    leaves = [(symbol, count) for symbol, count in enumerate(counts) if count != 0]
    header = bytearray(struct.pack(PREFIX_FMT, check_num, len(leaves)))
    for symbol, count in leaves:
        header += struct.pack(LEAF_FMT, symbol, count)
    header += struct.pack(SIZE_FMT, total)
    output_file.write(header)
    return len(header)


def check(input_file: BinaryIO) -> bool:
    """Compare the validity byte against the first bitstream byte.

    Only the prefix is trusted; the leaf count is used to seek and nothing
    else. Leaves the stream at offset 0.
    """
    input_file.seek(0)
    prefix = input_file.read(PREFIX_SIZE)
    if len(prefix) != PREFIX_SIZE:
        return False
    check_num, leaf_count = struct.unpack(PREFIX_FMT, prefix)
    if leaf_count == 0 or leaf_count > huff.SYMBOL_COUNT:
        return False

    input_file.seek(header_size(leaf_count))
    first = input_file.read(1)
    input_file.seek(0)
    return len(first) == 1 and first[0] == check_num


def input_counts(input_file: BinaryIO) -> Tuple[List[int], int]:
    """Parse the header of a container that passed check().

    Leaves the stream positioned at the start of the bitstream.
    """
    input_file.seek(0)
    _, leaf_count = struct.unpack(PREFIX_FMT, input_file.read(PREFIX_SIZE))
    table = input_file.read(leaf_count * LEAF_SIZE + SIZE_SIZE)
    if len(table) != leaf_count * LEAF_SIZE + SIZE_SIZE:
        raise InvalidContainer("container header is truncated")

    counts = [0] * huff.SYMBOL_COUNT
    for symbol, count in struct.iter_unpack(LEAF_FMT, table[:-SIZE_SIZE]):
        if counts[symbol] != 0:
            raise InvalidContainer(f"byte value {symbol} listed twice")
        if count == 0:
            raise InvalidContainer(f"byte value {symbol} has a zero frequency")
        counts[symbol] = count
    (total,) = struct.unpack(SIZE_FMT, table[-SIZE_SIZE:])

    if sum(counts) != total:
        raise InvalidContainer(f"leaf frequencies add up to {sum(counts)}, size field says {total}")
    return counts, total


def compress_data(input_file: BinaryIO, output_bit_file: 'CompressorBitio.BitFile', codes: Dict[int, str]):
    table = [None] * huff.SYMBOL_COUNT
    for symbol, code in codes.items():
        table[symbol] = (int(code, 2), len(code))

    input_file.seek(0)
    while True:
        chunk = input_file.read(CHUNK_SIZE)
        if not chunk:
            break
        for c in chunk:
            code, code_bits = table[c]
            output_bit_file.output_bits(code, code_bits)
    output_bit_file.flush_bits()


def expand_data(input_bit_file: 'CompressorBitio.BitFile', output_file: BinaryIO,
                root: huff.Node, remaining: int) -> int:
    """Walk the tree bit by bit until `remaining` bytes are produced.

    Bits left over after that are padding and are never read.
    """
    out = bytearray()
    bytes_written = 0
    node = root
    while remaining:
        try:
            bit = input_bit_file.input_bit()
        except EOFError as e:
            raise InvalidContainer(f"bitstream ended with {remaining} bytes still to decode") from e

        if bit:
            if node.child_1 is not None:
                node = node.child_1
        elif node.child_0 is not None:
            node = node.child_0

        if node.is_leaf():
            out.append(node.symbol)
            node = root
            remaining -= 1
            if len(out) >= CHUNK_SIZE:
                output_file.write(out)
                bytes_written += len(out)
                out.clear()

    output_file.write(out)
    bytes_written += len(out)
    return bytes_written


def compress_stream(input_file: BinaryIO, output_file: BinaryIO,
                    dump_model: bool = False, pacifier: bool = False) -> Tuple[int, int]:
    """Compress a seekable source into output_file. Returns (bytes_in, bytes_out)."""
    counts, total = huff.count_bytes(input_file)
    if total > huff.MAX_COUNT:
        raise ContainerOverflow(f"input of {total} bytes does not fit a 32-bit size field")

    root = huff.build_tree(huff.PendingSet.from_counts(counts))
    codes = huff.convert_tree_to_code(root)
    if dump_model:
        huff.print_model(root, codes)

    bytes_out = output_counts(output_file, counts, check_byte(input_file, codes), total)
    output_bit_file = CompressorBitio.BitFile(output_file, False, pacifier)
    compress_data(input_file, output_bit_file, codes)
    return total, bytes_out + output_bit_file.bytes_written


def expand_stream(input_file: BinaryIO, output_file: BinaryIO,
                  dump_model: bool = False, pacifier: bool = False) -> Tuple[int, int]:
    """Expand a seekable container into output_file. Returns (bytes_in, bytes_out)."""
    if not check(input_file):
        raise InvalidContainer("not an hcomp container")

    counts, total = input_counts(input_file)
    root = huff.build_tree(huff.PendingSet.from_counts(counts))
    if dump_model:
        huff.print_model(root, huff.convert_tree_to_code(root))

    input_bit_file = CompressorBitio.BitFile(input_file, True, pacifier)
    bytes_out = expand_data(input_bit_file, output_file, root, total)
    bytes_in = input_file.seek(0, os.SEEK_END)
    return bytes_in, bytes_out


def _open_source(source: str) -> BinaryIO:
    try:
        return open(source, "rb")
    except OSError as e:
        raise huff.SourceNotFound(e.errno, f"{source} not found", source) from e


@contextmanager
def _replace_on_success(target: str):
    """Write into a temporary file beside target, renamed over it on success."""
    directory = os.path.dirname(os.path.abspath(target))
    temp = tempfile.NamedTemporaryFile(mode="wb", dir=directory, prefix=".hcomp-", delete=False)
    try:
        with temp:
            yield temp
    except BaseException:
        os.unlink(temp.name)
        raise
    umask = os.umask(0)
    os.umask(umask)
    os.chmod(temp.name, 0o666 & ~umask)
    os.replace(temp.name, target)


def compress_file(source: str, target: str, dump_model: bool = False, pacifier: bool = False) -> Tuple[int, int]:
    with _open_source(source) as input_file, _replace_on_success(target) as output_file:
        return compress_stream(input_file, output_file, dump_model, pacifier)


def expand_file(source: str, target: str, dump_model: bool = False, pacifier: bool = False) -> Tuple[int, int]:
    with _open_source(source) as input_file, _replace_on_success(target) as output_file:
        return expand_stream(input_file, output_file, dump_model, pacifier)


def compress_bytes(data: bytes) -> bytes:
    output_file = io.BytesIO()
    compress_stream(io.BytesIO(data), output_file)
    return output_file.getvalue()


def expand_bytes(blob: bytes) -> bytes:
    output_file = io.BytesIO()
    expand_stream(io.BytesIO(blob), output_file)
    return output_file.getvalue()
