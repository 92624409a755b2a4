from typing import Optional


class HuffmanError(Exception):
    """Base class for codebook and decode tree failures."""


class UnmappedCharacterError(HuffmanError, KeyError):
    def __init__(self, character):
        super().__init__(character)
        self.character = character

    def __str__(self):
        return f"character {self.character!r} not in codebook"


class EmptyTreeError(HuffmanError, ValueError):
    def __init__(self, message="decode tree has no root"):
        super().__init__(message)


class TruncatedCodeError(HuffmanError, ValueError):
    """Input ran out part way through a code."""

    def __init__(self, position: int, decoded: str = ""):
        super().__init__(f"incomplete code at end of input after {position} bits")
        self.position = position # bits consumed
        self.decoded = decoded # text before the partial code, set by DecodeTree.decode


class InvalidPathError(HuffmanError, ValueError):
    """Decoding walked onto a path the tree does not have."""

    def __init__(self, position: int, message: Optional[str] = None):
        super().__init__(message or f"no code for bit path ending at bit {position}")
        self.position = position
