import io
import sys
from typing import BinaryIO, Iterable, Iterator

CHUNK_SIZE = 1 << 16


class CompressorBitio:
    PACIFIER_COUNT = 2047

    class BitFile:
        """MSB-first bit stream over an open binary file.

        Output mode packs bits into bytes and zero-pads the final partial
        byte on flush. Input mode hands back the bits of each byte from the
        most significant to the least significant.
        """

        def __init__(self, file_stream: BinaryIO, input_mode: bool, pacifier: bool = False):
            self.is_input = input_mode
            self.file_stream = file_stream
            self.rack: int = 0
            self.mask: int = 0x80
            self.pacifier = pacifier
            self.pacifier_counter: int = 0
            self.bytes_written: int = 0
            self._out = bytearray()
            self._in = b""
            self._in_pos = 0

        @staticmethod
        def open_output_bit_file(name: str, pacifier: bool = False) -> 'CompressorBitio.BitFile':
            return CompressorBitio.BitFile(open(name, "wb"), False, pacifier)

        @staticmethod
        def open_input_bit_file(name: str, pacifier: bool = False) -> 'CompressorBitio.BitFile':
            return CompressorBitio.BitFile(open(name, "rb"), True, pacifier)

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            if exc_type is None:
                self.close_bit_file()
            else:
                self.file_stream.close()

        def _tick(self):
            self.pacifier_counter += 1
            if self.pacifier and (self.pacifier_counter & CompressorBitio.PACIFIER_COUNT) == 0:
                sys.stdout.write(".")
                sys.stdout.flush()

        def _put_byte(self, value: int):
            self._out.append(value)
            self.bytes_written += 1
            self._tick()
            if len(self._out) >= CHUNK_SIZE:
                self.file_stream.write(self._out)
                self._out.clear()

        def flush_bits(self):
            """Write out any partial byte, valid bits high, and drain the buffer."""
            if self.is_input:
                return
            if self.mask != 0x80:
                self._put_byte(self.rack)
                self.rack = 0
                self.mask = 0x80
            if self._out:
                self.file_stream.write(self._out)
                self._out.clear()

        def close_bit_file(self):
            self.flush_bits()
            self.file_stream.close()

        def output_bit(self, bit: int):
            if bit != 0:
                self.rack |= self.mask
            self.mask >>= 1
            if self.mask == 0:
                self._put_byte(self.rack)
                self.rack = 0
                self.mask = 0x80

        def output_bits(self, code: int, count: int):
            mask_code: int = 1 << (count - 1)
            while mask_code != 0:
                if (mask_code & code) != 0:
                    self.rack |= self.mask
                self.mask >>= 1
                if self.mask == 0:
                    self._put_byte(self.rack)
                    self.rack = 0
                    self.mask = 0x80
                mask_code >>= 1

        def output_code(self, code: str):
            """Write a code given as a string of '0' and '1' symbols."""
            if not code or code.strip("01"):
                raise ValueError(f"not a bit string: {code!r}")
            self.output_bits(int(code, 2), len(code))

        def input_bit(self) -> int:
            if self.mask == 0x80:
                if self._in_pos >= len(self._in):
                    self._in = self.file_stream.read(CHUNK_SIZE)
                    self._in_pos = 0
                    if not self._in:
                        raise EOFError("Fatal error in InputBit! End of file reached.")
                self.rack = self._in[self._in_pos]
                self._in_pos += 1
                self._tick()
            value = self.rack & self.mask
            self.mask >>= 1
            if self.mask == 0:
                self.mask = 0x80
            return 1 if value != 0 else 0

        def input_bits(self, bit_count: int) -> int:
            return_value: int = 0
            for _ in range(bit_count):
                return_value = (return_value << 1) | self.input_bit()
            return return_value


def pack(codes: Iterable[str]) -> bytes:
    """Concatenate code strings and pack them MSB-first into bytes."""
    sink = io.BytesIO()
    bit_file = CompressorBitio.BitFile(sink, False)
    for code in codes:
        bit_file.output_code(code)
    bit_file.flush_bits()
    return sink.getvalue()


def unpack(data: bytes) -> Iterator[int]:
    for byte in data:
        mask = 0x80
        while mask:
            yield 1 if byte & mask else 0
            mask >>= 1
