import functools

import pytest

from ldbcore.key_types import bytewise_compare, cmp_memtable_key
from ldbcore.skipmap import SkipMap

KEYS = [
    "aba", "abb", "abc", "abd", "abe", "abf", "abg", "abh", "abi", "abj", "abk", "abl",
    "abm", "abn", "abo", "abp", "abq", "abr", "abs", "abt", "abu", "abv", "abw", "abx",
    "aby", "abz",
]


def make_skipmap():
    skm = SkipMap()
    for k in KEYS:
        skm.insert(k.encode(), b"def")
    return skm


def test_insert():
    skm = make_skipmap()
    assert len(skm) == 26
    assert [k for k, _ in skm] == [k.encode() for k in KEYS]


def test_no_dupes():
    skm = make_skipmap()
    with pytest.raises(ValueError):
        skm.insert(b"abc", b"def")


def test_empty_key_rejected():
    skm = SkipMap()
    with pytest.raises(ValueError):
        skm.insert(b"", b"x")


def test_contains():
    skm = make_skipmap()
    assert skm.contains(b"aby")
    assert skm.contains(b"abc")
    assert skm.contains(b"abz")
    assert not skm.contains(b"ab{")
    assert not skm.contains(b"123")
    assert not skm.contains(b"aaa")
    assert not skm.contains(b"456")


def test_find_greater_or_equal_via_seek():
    skm = make_skipmap()
    it = skm.iter()
    it.seek(b"abf")
    assert it.current()[0] == b"abf"
    it.seek(b"ab{")
    assert not it.valid()
    it.seek(b"aaa")
    assert it.current()[0] == b"aba"
    it.seek(b"ab")
    assert it.current()[0] == b"aba"
    it.seek(b"abc")
    assert it.current()[0] == b"abc"


def test_find_next_smaller_via_prev():
    skm = make_skipmap()
    it = skm.iter()
    it.seek(b"ab0")
    assert it.current()[0] == b"aba"
    assert not it.prev()
    assert not it.valid()

    it.seek(b"abd")
    assert it.prev()
    assert it.current()[0] == b"abc"

    it.seek(b"abz")
    assert it.prev()
    assert it.current()[0] == b"aby"


def test_empty_skipmap_find_memtable_cmp():
    skm = SkipMap(functools.partial(cmp_memtable_key, bytewise_compare))
    it = skm.iter()
    it.seek(b"abc")
    assert not it.valid()


def test_skipmap_iterator_0():
    skm = SkipMap()
    assert list(skm.iter()) == []
    assert not skm.iter().valid()


def test_skipmap_iterator_init():
    skm = make_skipmap()
    it = skm.iter()
    assert not it.valid()
    it.next_entry()
    assert it.valid()
    it.reset()
    assert not it.valid()

    it.next_entry()
    assert it.valid()
    it.prev()
    assert not it.valid()


def test_skipmap_iterator():
    skm = make_skipmap()
    entries = list(skm.iter())
    assert len(entries) == 26
    assert all(k and v for k, v in entries)


def test_skipmap_iterator_seek_valid():
    skm = make_skipmap()
    it = skm.iter()
    it.next_entry()
    assert it.valid()
    assert it.current()[0] == b"aba"
    it.seek(b"abz")
    assert it.current() == (b"abz", b"def")
    it.seek(b"aba")
    assert it.current() == (b"aba", b"def")

    it.seek(b"")
    assert it.valid()
    it.prev()
    assert not it.valid()

    while it.advance():
        pass
    assert not it.valid()
    assert not it.prev()
    assert it.current() is None


def test_skipmap_behavior():
    skm = SkipMap()
    for k in [b"aba", b"abb", b"abc", b"abd"]:
        skm.insert(k, b"def")
    it = skm.iter()

    assert not it.valid()
    assert it.current() is None
    assert it.advance()
    assert it.current() == (b"aba", b"def")
    assert it.advance()
    assert it.current() == (b"abb", b"def")
    assert it.prev()
    assert it.current() == (b"aba", b"def")

    it.seek(b"abc")
    assert it.current() == (b"abc", b"def")
    assert it.advance()
    assert it.current() == (b"abd", b"def")
    assert not it.advance()
    assert not it.valid()

    it.reset()
    assert not it.valid()
    assert it.next_entry() == (b"aba", b"def")


def test_skipmap_iterator_prev():
    skm = make_skipmap()
    it = skm.iter()
    it.next_entry()
    assert it.valid()
    it.prev()
    assert not it.valid()
    it.seek(b"abc")
    it.prev()
    assert it.current() == (b"abb", b"def")


def test_skipmap_iterator_concurrent_insert():
    skm = make_skipmap()
    it = skm.iter()
    assert it.advance()
    skm.insert(b"abccc", b"defff")
    keys = [k for k, _ in it]
    assert b"abccc" in keys
    assert keys.index(b"abccc") == keys.index(b"abc") + 1


def test_approx_memory_grows():
    skm = SkipMap()
    before = skm.approx_memory()
    skm.insert(b"key", b"value")
    assert skm.approx_memory() > before + len(b"key") + len(b"value")


def test_custom_comparator_orders_entries():
    skm = SkipMap(lambda a, b: bytewise_compare(b, a))
    for k in [b"b", b"c", b"a"]:
        skm.insert(k, b"v")
    assert [k for k, _ in skm] == [b"c", b"b", b"a"]


def test_many_inserts_stay_sorted():
    skm = SkipMap()
    keys = [("%04d" % ((i * 7919) % 1000)).encode() for i in range(1000)]
    for k in keys:
        skm.insert(k, k)
    result = [k for k, _ in skm]
    assert result == sorted(keys)
    assert len(skm) == 1000