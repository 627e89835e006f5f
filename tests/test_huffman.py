import random

import pytest

from huffman import (CodeTable, HuffmanNode, build_huffman_tree, freq_table,
                     generate_huffman_codes, is_prefix_free)
from huffman_errors import EmptyInputError, FormatError, MalformedStreamError


def test_freq_table_counts_in_symbol_order():
    ft = freq_table(b"cabca")
    assert dict(ft) == {97: 2, 98: 1, 99: 2}
    assert list(ft) == [97, 98, 99]
    assert sum(ft.values()) == 5


def test_freq_table_is_read_only():
    ft = freq_table(b"abc")
    with pytest.raises(TypeError):
        ft[97] = 10


def test_freq_table_empty():
    assert dict(freq_table(b"")) == {}


def test_build_tree_empty_table_raises():
    with pytest.raises(EmptyInputError):
        build_huffman_tree({})


def test_build_tree_root_weight_is_input_length():
    data = b"abracadabra"
    root = build_huffman_tree(freq_table(data))
    assert root.frequency == len(data)
    assert not root.is_leaf()


def test_single_symbol_root_is_leaf_with_one_bit_code():
    root = build_huffman_tree({65: 1000})
    assert isinstance(root, HuffmanNode)
    assert root.is_leaf()
    assert root.symbol == 65
    assert generate_huffman_codes(root) == {65: "0"}


def test_skewed_two_symbols():
    # lighter node is popped first and becomes the left child
    codes = generate_huffman_codes(build_huffman_tree({97: 9, 98: 1}))
    assert codes == {97: "1", 98: "0"}


def test_equal_weights_break_ties_by_symbol_then_merge_order():
    codes = generate_huffman_codes(build_huffman_tree({1: 1, 2: 1, 3: 1, 4: 1}))
    assert codes == {1: "00", 2: "01", 3: "10", 4: "11"}


def test_three_symbols():
    codes = generate_huffman_codes(build_huffman_tree({0: 5, 1: 2, 2: 1}))
    assert codes == {0: "1", 1: "01", 2: "00"}


def test_codes_are_reproducible():
    data = bytes(random.Random(7).randrange(0, 40) for _ in range(3000))
    first = generate_huffman_codes(build_huffman_tree(freq_table(data)))
    second = generate_huffman_codes(build_huffman_tree(freq_table(data)))
    assert first == second


@pytest.mark.parametrize("seed", [0, 1, 2, 3])
def test_built_codes_are_prefix_free_and_complete(seed):
    rng = random.Random(seed)
    alphabet = rng.randrange(2, 257)
    data = bytes(rng.randrange(0, alphabet) for _ in range(2000))
    ft = freq_table(data)
    codes = generate_huffman_codes(build_huffman_tree(ft))
    assert set(codes) == set(ft)
    assert all(len(code) >= 1 for code in codes.values())
    assert is_prefix_free(codes.values())
    # full binary tree: Kraft sum is exactly one
    assert sum(2 ** -len(code) for code in codes.values()) == 1


def test_more_frequent_symbols_never_get_longer_codes():
    ft = freq_table(b"a" * 50 + b"b" * 20 + b"c" * 10 + b"d" * 5 + b"e")
    codes = generate_huffman_codes(build_huffman_tree(ft))
    by_freq = sorted(ft, key=ft.get, reverse=True)
    lengths = [len(codes[s]) for s in by_freq]
    assert lengths == sorted(lengths)


def test_is_prefix_free():
    assert is_prefix_free(["0", "10", "11"])
    assert not is_prefix_free(["0", "01", "1"])
    assert not is_prefix_free(["10", "10"])
    assert is_prefix_free([])


def test_code_table_from_data():
    table = CodeTable.from_data(b"aaaaaaaaab")
    assert len(table) == 2
    assert table.code_for(97) == "1"
    assert table.code_for(98) == "0"
    assert 97 in table and 99 not in table
    assert list(table) == [97, 98]
    assert table.max_code_length == 1


def test_code_table_missing_symbol():
    table = CodeTable({0: "0", 1: "1"})
    with pytest.raises(KeyError):
        table.code_for(2)


def test_code_table_encoded_bit_length():
    ft = freq_table(b"aaaaaaaaab")
    table = CodeTable.from_frequencies(ft)
    assert table.encoded_bit_length(ft) == 10


def test_code_table_equality():
    assert CodeTable({1: "0", 2: "1"}) == CodeTable({2: "1", 1: "0"})
    assert CodeTable({1: "0", 2: "1"}) != CodeTable({1: "1", 2: "0"})


@pytest.mark.parametrize("codes", [
    {0: "0", 1: "01", 2: "1"},
    {0: "01", 1: "0"},
    {0: "1", 1: "1"},
    {0: ""},
    {0: "012"},
    {300: "0"},
])
def test_code_table_rejects_invalid_codes(codes):
    with pytest.raises(FormatError):
        CodeTable(codes)


@pytest.mark.parametrize("kind", ["trie", "dict"])
def test_matcher_decodes_incrementally(kind):
    matcher = CodeTable({0: "00", 1: "01", 2: "1"}).matcher(kind)
    assert matcher.push(0) is None
    assert matcher.partial
    assert matcher.push(1) == 1
    assert not matcher.partial
    assert matcher.push(1) == 2
    assert matcher.push(0) is None
    assert matcher.push(0) == 0


@pytest.mark.parametrize("kind", ["trie", "dict"])
def test_matcher_rejects_unknown_path(kind):
    matcher = CodeTable({0: "0"}).matcher(kind)
    assert matcher.push(0) == 0
    with pytest.raises(MalformedStreamError):
        matcher.push(1)


@pytest.mark.parametrize("kind", ["trie", "dict"])
def test_matcher_on_empty_table(kind):
    with pytest.raises(MalformedStreamError):
        CodeTable({}).matcher(kind).push(0)


def test_unknown_matcher_kind():
    with pytest.raises(ValueError):
        CodeTable({0: "0"}).matcher("bsearch")
