import heapq
from typing import BinaryIO, Dict, List, Optional, Tuple

import numpy as np

SYMBOL_COUNT = 256
MAX_COUNT = 0xFFFFFFFF
CHUNK_SIZE = 1 << 16


class HuffError(Exception):
    """Base class for every error the codec reports to its caller."""


class SourceNotFound(HuffError, FileNotFoundError):
    pass


class EmptyInput(HuffError, ValueError):
    pass


class Node:
    """A Huffman tree node.

    Leaves carry a byte value in ``symbol``; internal nodes carry two
    children and a count equal to the sum of theirs.
    """
    __slots__ = ['count', 'symbol', 'child_0', 'child_1']

    def __init__(self, count: int, symbol: Optional[int] = None,
                 child_0: Optional['Node'] = None, child_1: Optional['Node'] = None):
        if symbol is None:
            if child_0 is None or child_1 is None:
                raise ValueError("internal node needs two children")
            if count != child_0.count + child_1.count:
                raise ValueError(f"node count {count} != {child_0.count} + {child_1.count}")
        elif child_0 is not None or child_1 is not None:
            raise ValueError("leaf node cannot have children")
        self.count = count
        self.symbol = symbol
        self.child_0 = child_0
        self.child_1 = child_1

    def is_leaf(self) -> bool:
        return self.symbol is not None

    def __repr__(self):
        if self.is_leaf():
            return f"Node(count={self.count}, symbol={self.symbol})"
        return f"Node(count={self.count})"


class PendingSet:
    """Nodes waiting to be merged, keyed by (count, insertion order).

    Among equal counts the node inserted first comes out first, so a merged
    node always loses a tie against anything already in the set.
    """

    def __init__(self):
        self._heap: List[Tuple[int, int, Node]] = []
        self._next_seq = 0

    @classmethod
    def from_counts(cls, counts) -> 'PendingSet':
        pending = cls()
        for symbol in range(SYMBOL_COUNT):
            if counts[symbol] != 0:
                pending.insert(Node(int(counts[symbol]), symbol=symbol))
        return pending

    def insert(self, node: Node):
        heapq.heappush(self._heap, (node.count, self._next_seq, node))
        self._next_seq += 1

    def extract_min(self) -> Node:
        if not self._heap:
            raise IndexError("extract_min from an empty set")
        return heapq.heappop(self._heap)[2]

    def __len__(self):
        return len(self._heap)


def count_bytes(input_file: BinaryIO) -> Tuple[List[int], int]:
    """Count every byte value from the start of the stream.

    The stream position is restored afterwards. Raises EmptyInput when the
    stream holds no bytes.
    """
    input_marker = input_file.tell()
    input_file.seek(0)

    totals = np.zeros(SYMBOL_COUNT, dtype=np.uint64)
    while True:
        chunk = input_file.read(CHUNK_SIZE)
        if not chunk:
            break
        totals += np.bincount(np.frombuffer(chunk, dtype=np.uint8), minlength=SYMBOL_COUNT).astype(np.uint64)

    input_file.seek(input_marker)

    counts = [int(c) for c in totals]
    total = sum(counts)
    if total == 0:
        raise EmptyInput("cannot compress an empty input")
    return counts, total


def build_frequency_table(source: str) -> Tuple[List[int], int]:
    try:
        input_file = open(source, "rb")
    except OSError as e:
        raise SourceNotFound(e.errno, f"{source} not found", source) from e
    with input_file:
        return count_bytes(input_file)


def build_tree(pending: PendingSet) -> Node:
    if len(pending) == 0:
        raise ValueError("cannot build a tree from an empty set")

    while len(pending) > 1:
        min_1 = pending.extract_min()
        min_2 = pending.extract_min()
        pending.insert(Node(min_1.count + min_2.count, child_0=min_1, child_1=min_2))

    return pending.extract_min()


def convert_tree_to_code(root: Node) -> Dict[int, str]:
    if root.is_leaf():
        return {root.symbol: "0"}

    codes: Dict[int, str] = {}

    def walk(node: Node, code_so_far: str):
        if node.is_leaf():
            codes[node.symbol] = code_so_far
            return
        walk(node.child_0, code_so_far + "0")
        walk(node.child_1, code_so_far + "1")

    walk(root, "")
    return codes


def print_char(c, file=None):
    if c is None:
        print("  -", end="", file=file)
    elif 0x20 <= c < 127:
        print(f"'{chr(c)}'", end="", file=file)
    else:
        print(f"{c:3d}", end="", file=file)


def print_model(root: Node, codes: Optional[Dict[int, str]] = None, file=None):
    """Dump the tree, one line per node in depth-first order."""
    stack = [root]
    while stack:
        node = stack.pop()
        print("node=", end="", file=file)
        print_char(node.symbol, file)
        print(f"  count={node.count:3d}", end="", file=file)
        if node.is_leaf():
            if codes is not None:
                print(f"  Huffman code=<{codes[node.symbol]}>", end="", file=file)
        else:
            print(f"  child_0={node.child_0.count}  child_1={node.child_1.count}", end="", file=file)
            stack.append(node.child_1)
            stack.append(node.child_0)
        print(file=file)
