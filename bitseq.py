from typing import Iterable, Union

from bitarray import bitarray

BitsLike = Union[bitarray, str, Iterable]

_IGNORED = " \t\n_" # separators allowed in '0'/'1' text, e.g. "0 10 11"


def _reject_bytes(value) -> None:
    # every byte value but 0 is truthy, so bytes would read as a run of ones
    if isinstance(value, (bytes, bytearray, memoryview)):
        raise TypeError(f"{type(value).__name__} is not a bit sequence, use a bitarray or '0'/'1' text")


def to_bits(value: BitsLike) -> bitarray:
    """
    Coerce a bit sequence into a fresh bitarray
    Accepts a bitarray, '0'/'1' text, or any iterable of truthy/falsy bits
    """
    if isinstance(value, bitarray):
        return bitarray(value) # copy
    if isinstance(value, str):
        text = "".join(ch for ch in value if ch not in _IGNORED)
        bad = set(text) - {"0", "1"}
        if bad:
            raise ValueError(f"bit string may only contain '0' and '1', found {sorted(bad)}")
        return bitarray(text)
    _reject_bytes(value)
    out = bitarray()
    for bit in value:
        out.append(1 if bit else 0)
    return out


def iter_bits(value: BitsLike) -> Iterable:
    """Like to_bits, but leaves bitarrays and plain iterables unconsumed."""
    if isinstance(value, str):
        return to_bits(value)
    _reject_bytes(value)
    return value


def bits_to_str(bits: Iterable) -> str:
    return "".join("1" if bit else "0" for bit in bits)
