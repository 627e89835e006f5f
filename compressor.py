from bitpack import pack_bits, unpack_bits
from container import CompressedContainer
from huffman import CodeTable, freq_table


def compress(data: bytes) -> CompressedContainer:
    data = bytes(data)
    ft = freq_table(data)
    if not ft:
        # Zero-length input: no tree, no codes, no payload
        return CompressedContainer(CodeTable({}), 0, 0, b"")

    code_table = CodeTable.from_frequencies(ft)
    packed, leftover_bits = pack_bits(data, code_table)
    return CompressedContainer(code_table, len(data), leftover_bits, packed)


def decompress(container: CompressedContainer, matcher: str = "trie") -> bytes:
    # The symbol count is checked even for a single-symbol table, so a shortened
    # payload of all-zero codes still fails instead of decoding fewer bytes
    return unpack_bits(container.payload, container.leftover_bits, container.code_table,
                       expected_count=container.original_length, matcher=matcher)


def compress_bytes(data: bytes) -> bytes:
    return compress(data).to_bytes()


def decompress_bytes(blob: bytes, matcher: str = "trie") -> bytes:
    return decompress(CompressedContainer.from_bytes(blob), matcher=matcher)


def compression_ratio(original_size: int, compressed_size: int) -> float: # compressed / original, lower is better
    return compressed_size / max(1, original_size)
