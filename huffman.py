import heapq
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from huffman_errors import EmptyInputError, FormatError, MalformedStreamError


def freq_table(data: bytes) -> Mapping[int, int]: # data: input bytes, returns read-only symbol -> count
    ft: Dict[int, int] = {}
    for b in data:
        ft[b] = ft.get(b, 0) + 1
    return MappingProxyType(dict(sorted(ft.items())))


class HuffmanNode: # Node for Huffman tree
    def __init__(self, symbol, frequency, left=None, right=None):
        self.symbol = symbol    # byte or None
        self.frequency = frequency
        self.left = left
        self.right = right

    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def __repr__(self):
        if self.is_leaf():
            return f"HuffmanNode(symbol={self.symbol}, frequency={self.frequency})"
        return f"HuffmanNode(frequency={self.frequency})"


def build_huffman_tree(frequency_table: Mapping[int, int]) -> HuffmanNode: # frequency_table: dict of symbol -> frequency
    if not frequency_table:
        raise EmptyInputError("cannot build a Huffman tree from an empty frequency table")

    # (frequency, order, node): order breaks ties so equal inputs always give equal trees
    priority_queue: List[Tuple[int, int, HuffmanNode]] = []
    for order, symbol in enumerate(sorted(frequency_table)):
        priority_queue.append((frequency_table[symbol], order, HuffmanNode(symbol, frequency_table[symbol])))
    heapq.heapify(priority_queue)
    next_order = len(priority_queue)

    # Single distinct symbol: the leaf itself is the root, code derivation gives it "0"
    while len(priority_queue) > 1:
        left_freq, _, left = heapq.heappop(priority_queue)
        right_freq, _, right = heapq.heappop(priority_queue)
        merged_node = HuffmanNode(None, left_freq + right_freq, left, right) # internal node with combined frequency
        heapq.heappush(priority_queue, (merged_node.frequency, next_order, merged_node))
        next_order += 1

    return priority_queue[0][2] # root of the tree


def generate_huffman_codes(root: HuffmanNode) -> Dict[int, str]: # root: root of the Huffman tree
    if root.is_leaf():
        return {root.symbol: "0"}

    codes: Dict[int, str] = {}
    def generate_codes_helper(node, current_code): # recursive helper function to traverse the tree and generate codes
        if node.is_leaf():
            codes[node.symbol] = current_code
            return

        generate_codes_helper(node.left, current_code + '0')
        generate_codes_helper(node.right, current_code + '1')

    generate_codes_helper(root, '')
    return dict(sorted(codes.items()))


def is_prefix_free(codes) -> bool: # codes: iterable of bit strings
    # After sorting, a code that is a prefix of another sorts directly before some code it prefixes
    ordered = sorted(codes)
    for shorter, longer in zip(ordered, ordered[1:]):
        if longer.startswith(shorter):
            return False
    return True


class TrieMatcher:
    """Walks the code trie one bit at a time."""

    def __init__(self, children: List[List[int]], symbols: List[Optional[int]]):
        self._children = children
        self._symbols = symbols
        self._state = 0
        self._depth = 0

    @property
    def partial(self) -> bool:
        return self._state != 0

    def push(self, bit: int) -> Optional[int]:
        child = self._children[bit][self._state]
        if child < 0:
            raise MalformedStreamError(
                f"bit sequence of length {self._depth + 1} matches no code in the table")
        symbol = self._symbols[child]
        if symbol is not None:
            self._state = 0
            self._depth = 0
            return symbol
        self._state = child
        self._depth += 1
        return None


class PrefixDictMatcher:
    """Accumulates bits into a string and looks it up in the inverse code map."""

    def __init__(self, reverse_codes: Dict[str, int], max_code_length: int):
        self._reverse_codes = reverse_codes
        self._max_code_length = max_code_length
        self._buffer = ""

    @property
    def partial(self) -> bool:
        return bool(self._buffer)

    def push(self, bit: int) -> Optional[int]:
        self._buffer += "1" if bit else "0"
        symbol = self._reverse_codes.get(self._buffer)
        if symbol is not None:
            self._buffer = ""
            return symbol
        if len(self._buffer) >= self._max_code_length:
            raise MalformedStreamError(
                f"bit sequence of length {len(self._buffer)} matches no code in the table")
        return None


class CodeTable:
    """
    Bidirectional symbol <-> code mapping.

    Codes are strings of '0'/'1'. Decoding goes through an incremental matcher
    backed by a binary trie held as an arena: node 0 is the root, and
    ``_children[bit][node]`` is the index of the child reached by ``bit``
    (-1 when absent). Leaves carry their symbol in ``_symbols``.
    """

    def __init__(self, codes: Mapping[int, str]):
        self._codes: Dict[int, str] = {}
        for symbol, code in sorted(codes.items()):
            if not 0 <= symbol <= 255:
                raise FormatError(f"symbol {symbol} is outside the byte range")
            if not code or code.strip("01"):
                raise FormatError(f"invalid code {code!r} for symbol {symbol}")
            self._codes[symbol] = code

        self._children: List[List[int]] = [[-1], [-1]]
        self._symbols: List[Optional[int]] = [None]
        for symbol, code in self._codes.items():
            self._insert(symbol, code)

    def _insert(self, symbol: int, code: str) -> None:
        node = 0
        for ch in code:
            if self._symbols[node] is not None:
                raise FormatError(f"code for symbol {self._symbols[node]} is a prefix of the code for symbol {symbol}")
            bit = 1 if ch == '1' else 0
            child = self._children[bit][node]
            if child < 0:
                child = len(self._symbols)
                self._children[0].append(-1)
                self._children[1].append(-1)
                self._symbols.append(None)
                self._children[bit][node] = child
            node = child
        if self._symbols[node] is not None or self._children[0][node] >= 0 or self._children[1][node] >= 0:
            raise FormatError(f"code {code!r} for symbol {symbol} collides with another code")
        self._symbols[node] = symbol

    @classmethod
    def from_frequencies(cls, frequency_table: Mapping[int, int]) -> "CodeTable":
        return cls(generate_huffman_codes(build_huffman_tree(frequency_table)))

    @classmethod
    def from_data(cls, data: bytes) -> "CodeTable":
        return cls.from_frequencies(freq_table(data))

    def code_for(self, symbol: int) -> str:
        try:
            return self._codes[symbol]
        except KeyError:
            raise KeyError(f"symbol {symbol} has no code in this table") from None

    def items(self):
        return self._codes.items()

    def as_dict(self) -> Dict[int, str]:
        return dict(self._codes)

    @property
    def max_code_length(self) -> int:
        return max((len(code) for code in self._codes.values()), default=0)

    def encoded_bit_length(self, frequency_table: Mapping[int, int]) -> int:
        return sum(len(self._codes[symbol]) * count for symbol, count in frequency_table.items())

    def matcher(self, kind: str = "trie"):
        if kind == "trie":
            return TrieMatcher(self._children, self._symbols)
        if kind == "dict":
            return PrefixDictMatcher({code: symbol for symbol, code in self._codes.items()}, self.max_code_length)
        raise ValueError("matcher must be 'trie' or 'dict'")

    def __len__(self) -> int:
        return len(self._codes)

    def __iter__(self) -> Iterator[int]:
        return iter(self._codes)

    def __contains__(self, symbol) -> bool:
        return symbol in self._codes

    def __eq__(self, other):
        if not isinstance(other, CodeTable):
            return NotImplemented
        return self._codes == other._codes

    def __repr__(self):
        return f"CodeTable({self._codes!r})"
