from typing import Iterator, Optional, Tuple

from huffman import CodeTable
from huffman_errors import MalformedStreamError


class BitWriter:
    """MSB-first bit accumulator that emits a byte whenever 8 bits are ready."""

    def __init__(self):
        self._out = bytearray()
        self._acc = 0
        self._acc_bits = 0

    def write(self, value: int, width: int) -> None:
        if value < 0 or value >> width:
            raise ValueError(f"value {value} does not fit in {width} bits")
        self._acc = (self._acc << width) | value
        self._acc_bits += width
        while self._acc_bits >= 8:
            self._acc_bits -= 8
            self._out.append((self._acc >> self._acc_bits) & 0xFF)
        self._acc &= (1 << self._acc_bits) - 1

    def write_code(self, code: str) -> None:
        self.write(int(code, 2), len(code))

    def getvalue(self) -> Tuple[bytes, int]:
        """
        Returns (packed_bytes, leftover_bits) where leftover_bits is the number
        of real bits in the final byte (0 when the data ends on a byte boundary).
        The final partial byte is padded with zero bits.
        """
        out = bytes(self._out)
        if self._acc_bits:
            out += bytes([(self._acc << (8 - self._acc_bits)) & 0xFF])
        return out, self._acc_bits


class BitReader:
    def __init__(self, data: bytes, bit_length: Optional[int] = None):
        if bit_length is None:
            bit_length = len(data) * 8
        if not 0 <= bit_length <= len(data) * 8:
            raise ValueError(f"bit_length {bit_length} exceeds the {len(data)} available bytes")
        self._data = data
        self._limit = bit_length
        self._pos = 0

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return self._limit - self._pos

    def read_bit(self) -> int:
        if self._pos >= self._limit:
            raise MalformedStreamError(f"bit stream exhausted after {self._limit} bits")
        byte = self._data[self._pos >> 3]
        bit = (byte >> (7 - (self._pos & 7))) & 1
        self._pos += 1
        return bit

    def read(self, width: int) -> int:
        if width > self.remaining:
            raise MalformedStreamError(
                f"need {width} bits at position {self._pos}, only {self.remaining} left")
        value = 0
        for _ in range(width):
            value = (value << 1) | self.read_bit()
        return value

    def __iter__(self) -> Iterator[int]:
        while self._pos < self._limit:
            yield self.read_bit()


def payload_bit_length(packed: bytes, leftover_bits: int) -> int:
    if not 0 <= leftover_bits <= 7:
        raise MalformedStreamError(f"leftover bit count {leftover_bits} is outside 0..7")
    if not packed:
        if leftover_bits:
            raise MalformedStreamError(f"empty payload cannot hold {leftover_bits} leftover bits")
        return 0
    if leftover_bits == 0:
        return len(packed) * 8
    return (len(packed) - 1) * 8 + leftover_bits


def pack_bits(data: bytes, code_table: CodeTable) -> Tuple[bytes, int]:
    """
    Converts Huffman codes into packed bytes
    Returns (packed_bytes, leftover_bits)
    """
    # int value and width per symbol so each code is shifted in at once
    lookup = {symbol: (int(code, 2), len(code)) for symbol, code in code_table.items()}
    writer = BitWriter()
    for b in data:
        try:
            value, width = lookup[b]
        except KeyError:
            raise KeyError(f"symbol {b} has no code in this table") from None
        writer.write(value, width)
    return writer.getvalue()


def unpack_bits(packed: bytes, leftover_bits: int, code_table: CodeTable,
                expected_count: Optional[int] = None, matcher: str = "trie") -> bytes:
    """
    Decode packed bits using the code table's incremental matcher
    """
    reader = BitReader(packed, payload_bit_length(packed, leftover_bits))
    match = code_table.matcher(matcher)
    decoded = bytearray()

    for bit in reader:
        symbol = match.push(bit)
        if symbol is not None:
            decoded.append(symbol)

    if match.partial:
        raise MalformedStreamError(
            f"bit stream ended inside a code after {len(decoded)} symbols")
    if expected_count is not None and len(decoded) != expected_count:
        raise MalformedStreamError(
            f"decoded {len(decoded)} symbols, container declares {expected_count}")
    return bytes(decoded)
