import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple, Union

from bitarray import bitarray

from bitseq import BitsLike, iter_bits, to_bits
from codebook import CodeBook, check_character
from errors import EmptyTreeError, InvalidPathError, TruncatedCodeError

logger = logging.getLogger(__name__)


@dataclass
class Leaf: # decoded character, no children
    symbol: str

    def is_leaf(self) -> bool:
        return True

    def is_valid_node(self) -> bool:
        return True

    def is_valid_tree(self) -> bool:
        return True


@dataclass
class Branch: # no character, zero/one children (absent only while a tree is being filled)
    zero: Optional["Node"] = None
    one: Optional["Node"] = None

    def child(self, bit) -> Optional["Node"]:
        return self.one if bit else self.zero

    def is_leaf(self) -> bool:
        return False

    def is_valid_node(self) -> bool:
        return self.zero is not None and self.one is not None

    def is_valid_tree(self) -> bool:
        # Explicit stack, code lengths are not bounded by the recursion limit
        stack = [self]
        while stack:
            node = stack.pop()
            if node.is_leaf():
                continue
            if not node.is_valid_node():
                return False
            stack.append(node.one)
            stack.append(node.zero)
        return True


Node = Union[Leaf, Branch]


def _attach(parent: Branch, bit, child: Node) -> None:
    if bit:
        parent.one = child
    else:
        parent.zero = child


class DecodeTree:
    """
    Bit sequence -> character trie

    Built from a root node directly, from a CodeBook, or path by path with put().
    Decoding walks one bit at a time and restarts at the root after each leaf.
    An input that ends part way through a code raises TruncatedCodeError.
    """

    def __init__(self, root: Optional[Node] = None):
        self.root = root

    @classmethod
    def from_codebook(cls, codebook: CodeBook) -> "DecodeTree":
        tree = cls()
        count = 0
        for character, bits in codebook.entries():
            tree.put(bits, character)
            count += 1
        logger.debug("built decode tree from %d codebook entries", count)
        return tree

    def put(self, bits: BitsLike, character: str) -> None:
        # Missing nodes on the way become branches, the end of the path gets a
        # fresh leaf; anything already at that position is replaced
        check_character(character)
        path = to_bits(bits)
        leaf = Leaf(character)
        if len(path) == 0:
            if self.root is not None:
                logger.debug("replacing tree root with leaf %r", character)
            self.root = leaf
            return

        if not isinstance(self.root, Branch):
            if self.root is not None:
                logger.debug("replacing leaf root %r with a branch", self.root.symbol)
            self.root = Branch()

        node = self.root
        for bit in path[:-1]:
            child = node.child(bit)
            if not isinstance(child, Branch):
                if child is not None:
                    logger.debug("path for %r overwrites leaf %r", character, child.symbol)
                child = Branch()
                _attach(node, bit, child)
            node = child

        if node.child(path[-1]) is not None:
            logger.debug("path for %r overwrites an existing node", character)
        _attach(node, path[-1], leaf)

    def _require_root(self) -> Node:
        if self.root is None:
            raise EmptyTreeError()
        return self.root

    def is_valid(self) -> bool:
        return self._require_root().is_valid_tree()

    def iterdecode(self, bits: BitsLike) -> Iterator[str]:
        # Lazy; a TruncatedCodeError raised here carries no decoded text,
        # the characters were already yielded to the caller
        root = self._require_root()
        path = iter_bits(bits)

        if isinstance(root, Leaf):
            # zero-length code: there is no bit to consume per character
            if next(iter(path), None) is not None:
                raise InvalidPathError(0, "tree root is a leaf, cannot decode non-empty input")
            return

        node = root
        position = 0
        for bit in path:
            position += 1
            child = node.child(bit)
            if child is None:
                raise InvalidPathError(position)
            if child.is_leaf():
                yield child.symbol
                node = root # reset for next symbol
            else:
                node = child

        if node is not root:
            raise TruncatedCodeError(position)

    def decode(self, bits: BitsLike) -> str:
        out = []
        try:
            for symbol in self.iterdecode(bits):
                out.append(symbol)
        except TruncatedCodeError as exc:
            exc.decoded = "".join(out)
            raise
        return "".join(out)

    def codes(self) -> Iterator[Tuple[str, bitarray]]:
        # Every leaf with its root-to-leaf path, zero side first
        if self.root is None:
            return
        stack = [(self.root, bitarray())]
        while stack:
            node, prefix = stack.pop()
            if node.is_leaf():
                yield node.symbol, prefix
                continue
            for bit in (1, 0):
                child = node.child(bit)
                if child is not None:
                    stack.append((child, prefix + bitarray([bit])))

    def to_codebook(self) -> CodeBook:
        return CodeBook.from_mapping(self.codes())

    def __len__(self) -> int:
        return sum(1 for _ in self.codes())

    def __repr__(self) -> str:
        return f"DecodeTree(root={self.root!r})"
