"""
Binary container for Huffman-compressed data.

Layout (varints are unsigned LEB128: 7 bits per byte, low group first,
high bit set on every byte but the last):

    [alphabet_size: varint]       0..256
    [original_length: varint]     number of encoded symbols
    [code table]                  bit-packed, zero-padded to a byte boundary;
                                  per entry in ascending symbol order:
                                    symbol       8 bits
                                    code length  W bits
                                    code bits    code length bits
    [leftover_bits: u8]           real bits in the final payload byte (0..7)
    [payload]                     remaining bytes

W = max(1, bit_length(alphabet_size - 1)), since no code in a tree of n leaves
is longer than n - 1 bits (a lone symbol gets a 1-bit code).
"""

from dataclasses import dataclass
from typing import Dict, Tuple

from bitpack import BitReader, BitWriter
from huffman import CodeTable
from huffman_errors import FormatError, MalformedStreamError

MAX_ALPHABET_SIZE = 256
SYMBOL_BITS = 8
LEFTOVER_BITS_MAX = 7
MAX_VARINT_BYTES = 10 # enough for any 64-bit length


def encode_varint(n: int) -> bytes:
    if n < 0:
        raise ValueError("varint only supports non-negative integers")
    out = bytearray()
    while True:
        b = n & 0x7F
        n >>= 7
        if n:
            out.append(0x80 | b)
        else:
            out.append(b)
            break
    return bytes(out)


def decode_varint(blob: bytes, offset: int) -> Tuple[int, int]: # returns (value, offset after the varint)
    value = 0
    shift = 0
    for i in range(MAX_VARINT_BYTES):
        if offset + i >= len(blob):
            raise FormatError(f"truncated varint at offset {offset}")
        b = blob[offset + i]
        value |= (b & 0x7F) << shift
        if not b & 0x80:
            return value, offset + i + 1
        shift += 7
    raise FormatError(f"varint at offset {offset} is longer than {MAX_VARINT_BYTES} bytes")


def code_length_width(alphabet_size: int) -> int:
    return max(1, (alphabet_size - 1).bit_length())


def max_code_length(alphabet_size: int) -> int:
    return max(1, alphabet_size - 1)


@dataclass(frozen=True)
class CompressedContainer:
    code_table: CodeTable
    original_length: int
    leftover_bits: int
    payload: bytes

    @property
    def alphabet_size(self) -> int:
        return len(self.code_table)

    def _table_bytes(self) -> bytes:
        width = code_length_width(self.alphabet_size)
        writer = BitWriter()
        for symbol, code in self.code_table.items():
            writer.write(symbol, SYMBOL_BITS)
            writer.write(len(code), width)
            writer.write_code(code)
        table, _ = writer.getvalue()
        return table

    def to_bytes(self) -> bytes:
        if not 0 <= self.leftover_bits <= LEFTOVER_BITS_MAX:
            raise FormatError(f"leftover bit count {self.leftover_bits} is outside 0..{LEFTOVER_BITS_MAX}")
        return b"".join((
            encode_varint(self.alphabet_size),
            encode_varint(self.original_length),
            self._table_bytes(),
            bytes([self.leftover_bits]),
            bytes(self.payload),
        ))

    def size(self) -> int: # header + payload, in bytes
        return len(self.to_bytes())

    def header_size(self) -> int:
        return self.size() - len(self.payload)

    @classmethod
    def from_bytes(cls, blob: bytes) -> "CompressedContainer":
        blob = bytes(blob)
        alphabet_size, offset = decode_varint(blob, 0)
        if alphabet_size > MAX_ALPHABET_SIZE:
            raise FormatError(f"alphabet size {alphabet_size} exceeds {MAX_ALPHABET_SIZE}")
        original_length, offset = decode_varint(blob, offset)
        if (alphabet_size == 0) != (original_length == 0):
            raise FormatError(
                f"alphabet size {alphabet_size} is inconsistent with symbol count {original_length}")

        code_table, offset = _read_code_table(blob, offset, alphabet_size)

        if offset >= len(blob):
            raise FormatError("container ends before the leftover bit count")
        leftover_bits = blob[offset]
        if leftover_bits > LEFTOVER_BITS_MAX:
            raise FormatError(f"leftover bit count {leftover_bits} is outside 0..{LEFTOVER_BITS_MAX}")
        payload = blob[offset + 1:]
        if alphabet_size == 0 and (payload or leftover_bits):
            raise FormatError("empty container carries payload data")

        return cls(code_table, original_length, leftover_bits, payload)


def _read_code_table(blob: bytes, offset: int, alphabet_size: int) -> Tuple[CodeTable, int]:
    width = code_length_width(alphabet_size)
    limit = max_code_length(alphabet_size)
    reader = BitReader(blob[offset:])
    codes: Dict[int, str] = {}
    try:
        for index in range(alphabet_size):
            symbol = reader.read(SYMBOL_BITS)
            length = reader.read(width)
            if length == 0:
                raise FormatError(f"table entry {index} (symbol {symbol}) declares a zero-length code")
            if length > limit:
                raise FormatError(
                    f"table entry {index} (symbol {symbol}) declares code length {length}, "
                    f"above the limit of {limit} for {alphabet_size} symbols")
            if symbol in codes:
                raise FormatError(f"symbol {symbol} appears twice in the code table")
            codes[symbol] = format(reader.read(length), f"0{length}b")
    except MalformedStreamError as exc:
        raise FormatError(f"truncated code table: {exc}") from exc

    table_bytes = (reader.position + 7) // 8
    return CodeTable(codes), offset + table_bytes
