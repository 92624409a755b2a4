import logging
from typing import Callable, Iterable, Iterator, Optional, Tuple, Union

from bitarray import bitarray

from bitseq import BitsLike, bits_to_str, to_bits
from errors import UnmappedCharacterError

logger = logging.getLogger(__name__)


class CodeBookNode: # Search tree node: character -> code
    def __init__(self, key: str, value: bitarray):
        self.key = key
        self.value = value
        self.left = None
        self.right = None


def check_character(character) -> None:
    if not isinstance(character, str) or len(character) != 1:
        raise ValueError(f"expected a single character, got {character!r}")


def _direction(key: str, node_key: str) -> int:
    # Mirrored ordering: greater keys go left, smaller keys go right
    # Insertion and lookup must both route through here
    if key > node_key:
        return -1
    if key < node_key:
        return 1
    return 0


class CodeBook:
    """
    Character -> bit sequence table stored as a binary search tree

    Re-adding a character keeps the first sequence given for it.
    """

    def __init__(self):
        self.root: Optional[CodeBookNode] = None
        self._size = 0

    @classmethod
    def from_mapping(cls, mapping: Union[dict, Iterable[Tuple[str, BitsLike]]]) -> "CodeBook":
        book = cls()
        pairs = mapping.items() if isinstance(mapping, dict) else mapping
        for character, bits in pairs:
            book.add_sequence(character, bits)
        return book

    def add_sequence(self, character: str, bits: BitsLike) -> bool:
        # Returns False when the character was already mapped (first write wins)
        check_character(character)
        if self.root is None:
            self.root = CodeBookNode(character, to_bits(bits))
            self._size += 1
            return True

        node = self.root
        while True:
            step = _direction(character, node.key)
            if step == 0:
                logger.debug("ignoring duplicate sequence for %r", character)
                return False
            if step < 0:
                if node.left is None:
                    node.left = CodeBookNode(character, to_bits(bits))
                    break
                node = node.left
            else:
                if node.right is None:
                    node.right = CodeBookNode(character, to_bits(bits))
                    break
                node = node.right

        self._size += 1
        return True

    def lookup(self, character: str) -> Tuple[Optional[bitarray], int]: # sequence and number of comparisons made
        comparisons = 0
        node = self.root
        while node is not None:
            comparisons += 1
            step = _direction(character, node.key)
            if step == 0:
                return node.value, comparisons
            node = node.left if step < 0 else node.right
        return None, comparisons

    def get_sequence(self, character: str) -> Optional[bitarray]:
        return self.lookup(character)[0]

    def contains(self, character: str) -> bool:
        return self.get_sequence(character) is not None

    def __contains__(self, character) -> bool:
        return self.contains(character)

    def contains_all(self, text: str) -> bool:
        # Empty text is vacuously covered
        return all(self.contains(ch) for ch in text)

    def encode(self, text: str) -> bitarray:
        out = bitarray()
        for ch in text:
            bits = self.get_sequence(ch)
            if bits is None:
                raise UnmappedCharacterError(ch)
            out.extend(bits)
        return out

    def entries(self) -> Iterator[Tuple[str, bitarray]]:
        # Pre-order: node, then left subtree, then right subtree
        stack = [self.root] if self.root is not None else []
        while stack:
            node = stack.pop()
            yield node.key, node.value
            if node.right is not None:
                stack.append(node.right)
            if node.left is not None:
                stack.append(node.left)

    def __iter__(self) -> Iterator[Tuple[str, bitarray]]:
        return self.entries()

    def for_each(self, visitor: Callable[[str, bitarray], None]) -> None:
        for character, bits in self.entries():
            visitor(character, bits)

    def depth(self) -> int:
        if self.root is None:
            return 0
        deepest = 0
        stack = [(self.root, 1)]
        while stack:
            node, level = stack.pop()
            deepest = max(deepest, level)
            for child in (node.left, node.right):
                if child is not None:
                    stack.append((child, level + 1))
        return deepest

    def __len__(self) -> int:
        return self._size

    def __str__(self) -> str:
        return "\n".join(f"{character}: {bits_to_str(bits)}" for character, bits in self.entries())

    def __repr__(self) -> str:
        return f"CodeBook(entries={self._size})"
