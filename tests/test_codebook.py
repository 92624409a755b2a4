import pytest
from bitarray import bitarray

from codebook import CodeBook
from errors import HuffmanError, UnmappedCharacterError
from experiments import PIPELINES, insertion_order


@pytest.fixture
def abc_book():
    return CodeBook.from_mapping({"a": "0", "b": "10", "c": "11"})


class TestLookup:
    def test_get_sequence(self, abc_book):
        assert abc_book.get_sequence("a") == bitarray("0")
        assert abc_book.get_sequence("b") == bitarray("10")
        assert abc_book.get_sequence("c") == bitarray("11")

    def test_get_sequence_missing(self, abc_book):
        assert abc_book.get_sequence("z") is None
        assert CodeBook().get_sequence("a") is None

    def test_contains(self, abc_book):
        assert abc_book.contains("a")
        assert not abc_book.contains("d")
        assert "c" in abc_book
        assert "q" not in abc_book

    def test_contains_all(self, abc_book):
        assert abc_book.contains_all("abcabc")
        assert not abc_book.contains_all("abd")
        assert not abc_book.contains_all("dab")

    def test_contains_all_empty_text(self, abc_book):
        assert abc_book.contains_all("")
        assert CodeBook().contains_all("")

    def test_lookup_counts_comparisons(self):
        book = CodeBook.from_mapping([("b", "10"), ("a", "0"), ("c", "11")])
        assert book.lookup("b") == (bitarray("10"), 1)
        assert book.lookup("a") == (bitarray("0"), 2)
        assert book.lookup("z") == (None, 2)


class TestInsertion:
    def test_duplicate_keeps_first_sequence(self):
        book = CodeBook()
        assert book.add_sequence("a", "01")
        assert not book.add_sequence("a", "111")
        assert book.get_sequence("a") == bitarray("01")
        assert len(book) == 1

    def test_stored_sequence_is_independent_of_caller(self):
        seq = bitarray("01")
        book = CodeBook()
        book.add_sequence("a", seq)
        seq.append(1)
        assert book.get_sequence("a") == bitarray("01")

    def test_greater_keys_go_left(self):
        book = CodeBook.from_mapping([("b", "10"), ("a", "0"), ("c", "11")])
        assert book.root.key == "b"
        assert book.root.left.key == "c"
        assert book.root.right.key == "a"

    @pytest.mark.parametrize("bad", ["ab", "", None])
    def test_key_must_be_a_single_character(self, bad):
        book = CodeBook.from_mapping({"a": "0"})
        with pytest.raises(ValueError):
            book.add_sequence(bad, "1")
        assert len(book) == 1
        assert not book.contains("ab")

    def test_bytes_sequence_is_rejected(self):
        with pytest.raises(TypeError):
            CodeBook().add_sequence("a", b"01")

    def test_sorted_insertion_makes_a_chain(self):
        book = CodeBook.from_mapping([(ch, "0") for ch in "abcd"])
        assert book.depth() == 4
        assert book.root.right is None
        assert CodeBook().depth() == 0


class TestEncode:
    def test_encode(self, abc_book):
        assert abc_book.encode("abc") == bitarray("01011")

    def test_encode_empty(self, abc_book):
        assert abc_book.encode("") == bitarray()

    def test_single_character_book(self):
        book = CodeBook.from_mapping({"x": "0"})
        assert book.encode("xxx") == bitarray("000")

    def test_unmapped_character(self, abc_book):
        with pytest.raises(UnmappedCharacterError) as excinfo:
            abc_book.encode("abz")
        assert excinfo.value.character == "z"
        assert "not in codebook" in str(excinfo.value)
        assert isinstance(excinfo.value, KeyError)
        assert isinstance(excinfo.value, HuffmanError)


class TestTraversal:
    def test_pre_order(self):
        book = CodeBook.from_mapping([("m", "0"), ("d", "10"), ("t", "110"), ("a", "1110"), ("x", "1111")])
        # m; left (greater) subtree t, x; right (smaller) subtree d, a
        assert [ch for ch, _ in book.entries()] == ["m", "t", "x", "d", "a"]

    @pytest.mark.parametrize("order", PIPELINES)
    def test_visits_every_entry_once(self, order):
        letters = list("qwertyuiopasdfghjklzxcvbnm")
        book = CodeBook.from_mapping([(ch, "1") for ch in insertion_order(letters, order, seed=3)])
        visited = [ch for ch, _ in book]
        assert sorted(visited) == sorted(letters)

        lines = str(book).splitlines()
        assert len(lines) == len(letters)
        assert [line.split(":")[0] for line in lines] == visited

    def test_entries_is_restartable(self, abc_book):
        assert list(abc_book.entries()) == list(abc_book.entries())
        assert list(CodeBook().entries()) == []

    def test_for_each(self, abc_book):
        seen = {}
        abc_book.for_each(lambda ch, bits: seen.__setitem__(ch, bits))
        assert seen == {"a": bitarray("0"), "b": bitarray("10"), "c": bitarray("11")}

    def test_str(self):
        book = CodeBook.from_mapping([("b", "10"), ("a", "0"), ("c", "11")])
        assert str(book) == "b: 10\nc: 11\na: 0"
        assert len(str(book).splitlines()) == len(book)

    def test_str_empty(self):
        assert str(CodeBook()) == ""
