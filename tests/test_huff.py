import io
import itertools
import random

import pytest

import huff
from huff import Node, PendingSet


def tree_for(data):
    counts, _ = huff.count_bytes(io.BytesIO(data))
    return huff.build_tree(PendingSet.from_counts(counts))


def check_weights(node):
    if node.is_leaf():
        return node.count
    assert node.count == check_weights(node.child_0) + check_weights(node.child_1)
    return node.count


def test_count_bytes_counts_and_restores_position():
    stream = io.BytesIO(b"AAABBC")
    stream.seek(2)
    counts, total = huff.count_bytes(stream)
    assert total == 6
    assert counts[ord("A")] == 3
    assert counts[ord("B")] == 2
    assert counts[ord("C")] == 1
    assert sum(counts) == 6
    assert stream.tell() == 2


def test_count_bytes_rejects_empty_input():
    with pytest.raises(huff.EmptyInput):
        huff.count_bytes(io.BytesIO(b""))


def test_build_frequency_table_missing_source(tmp_path):
    with pytest.raises(huff.SourceNotFound) as excinfo:
        huff.build_frequency_table(str(tmp_path / "missing"))
    assert isinstance(excinfo.value, FileNotFoundError)


def test_build_frequency_table_reads_file(tmp_path):
    source = tmp_path / "in.bin"
    source.write_bytes(bytes(range(256)) * 2)
    counts, total = huff.build_frequency_table(str(source))
    assert total == 512
    assert counts == [2] * 256


def test_internal_node_checks_its_count():
    a, b = Node(2, symbol=1), Node(3, symbol=2)
    assert Node(5, child_0=a, child_1=b).count == 5
    with pytest.raises(ValueError):
        Node(6, child_0=a, child_1=b)
    with pytest.raises(ValueError):
        Node(2, child_0=a)


def test_pending_set_breaks_ties_by_insertion_order():
    pending = PendingSet()
    first, second, third = Node(4, symbol=9), Node(1, symbol=3), Node(1, symbol=7)
    for node in (first, second, third):
        pending.insert(node)
    merged = Node(4, child_0=Node(2, symbol=0), child_1=Node(2, symbol=1))
    pending.insert(merged)
    assert pending.extract_min() is second
    assert pending.extract_min() is third
    assert pending.extract_min() is first
    assert pending.extract_min() is merged
    assert len(pending) == 0
    with pytest.raises(IndexError):
        pending.extract_min()


def test_from_counts_skips_zero_counts():
    counts = [0] * 256
    counts[200] = 5
    counts[10] = 5
    pending = PendingSet.from_counts(counts)
    assert len(pending) == 2
    assert pending.extract_min().symbol == 10


def test_merge_order_for_aaabbc():
    root = tree_for(b"AAABBC")
    assert root.count == 6
    assert root.child_0.symbol == ord("A")
    merged = root.child_1
    assert merged.count == 3
    assert merged.child_0.symbol == ord("C")
    assert merged.child_1.symbol == ord("B")

    codes = huff.convert_tree_to_code(root)
    assert codes == {ord("A"): "0", ord("C"): "10", ord("B"): "11"}


def test_two_symbols_need_one_merge():
    root = tree_for(b"ab")
    assert huff.convert_tree_to_code(root) == {ord("a"): "0", ord("b"): "1"}


def test_single_symbol_gets_one_bit_code():
    root = tree_for(b"XXXXX")
    assert root.is_leaf()
    assert huff.convert_tree_to_code(root) == {ord("X"): "0"}


def test_build_tree_rejects_empty_set():
    with pytest.raises(ValueError):
        huff.build_tree(PendingSet())


def test_codes_are_prefix_free_and_weights_add_up():
    rng = random.Random(7)
    data = bytes(rng.choice(b"abcdefghij" * 3 + bytes(range(256))) for _ in range(5000))
    root = tree_for(data)
    check_weights(root)
    codes = huff.convert_tree_to_code(root)
    assert set(codes) == set(data)
    for left, right in itertools.permutations(codes.values(), 2):
        assert not right.startswith(left)


def test_rebuilding_from_same_counts_is_deterministic():
    counts = [0] * 256
    for symbol in range(0, 256, 3):
        counts[symbol] = 1 + symbol % 4
    first = huff.convert_tree_to_code(huff.build_tree(PendingSet.from_counts(counts)))
    second = huff.convert_tree_to_code(huff.build_tree(PendingSet.from_counts(list(counts))))
    assert first == second


def test_print_model_lists_codes():
    root = tree_for(b"AAABBC")
    out = io.StringIO()
    huff.print_model(root, huff.convert_tree_to_code(root), file=out)
    lines = out.getvalue().splitlines()
    assert len(lines) == 5
    assert "count=  6" in lines[0]
    assert "'A'  count=  3  Huffman code=<0>" in out.getvalue()
    assert "'B'  count=  2  Huffman code=<11>" in out.getvalue()
