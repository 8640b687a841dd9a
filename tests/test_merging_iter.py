from ldbcore.merging_iter import MergingIter
from ldbcore.skipmap import SkipMap

VAL = b"def"


def make_skipmap():
    skm = SkipMap()
    for c in "abcdefghijklmnopqrstuvwxyz":
        skm.insert(("ab" + c).encode(), VAL)
    return skm


def map_of(*keys):
    skm = SkipMap()
    for key in keys:
        skm.insert(key, VAL)
    return skm


def check_iterator_properties(it):
    assert not it.valid()
    assert it.advance()
    assert it.valid()
    entries = [it.current()]
    while it.advance():
        entries.append(it.current())
    assert not it.valid()
    assert len(entries) >= 3

    it.reset()
    assert not it.valid()
    assert it.current() is None

    it.seek(entries[1][0])
    assert it.current() == entries[1]
    assert it.prev()
    assert it.current() == entries[0]
    assert it.advance()
    assert it.current() == entries[1]

    it.reset()
    assert not it.valid()
    assert it.next_entry() == entries[0]


def test_merging_one():
    skm = make_skipmap()
    miter = MergingIter([skm.iter()])
    assert list(miter) == list(skm.iter())


def test_merging_two():
    skm = make_skipmap()
    miter = MergingIter([skm.iter(), skm.iter()])
    entries = list(miter)
    assert len(entries) == 52
    for first, second in zip(entries[::2], entries[1::2]):
        assert first == second


def test_merging_zero():
    miter = MergingIter([])
    assert list(miter) == []
    assert not miter.valid()


def test_merging_behavior():
    it1 = map_of(b"aba", b"abc").iter()
    it2 = map_of(b"abb", b"abd").iter()
    check_iterator_properties(MergingIter([it1, it2]))


def test_merging_forward_backward():
    it1 = map_of(b"aba", b"abc", b"abe").iter()
    it2 = map_of(b"abb", b"abd").iter()
    miter = MergingIter([it1, it2])

    first = miter.next_entry()
    second = miter.next_entry()
    third = miter.next_entry()
    assert (first, second, third) == ((b"aba", VAL), (b"abb", VAL), (b"abc", VAL))

    assert miter.prev()
    assert miter.current() == second
    assert miter.prev()
    assert miter.current() == first
    assert miter.advance()
    assert miter.current() == second
    assert miter.advance()
    assert miter.current() == third
    assert miter.advance()
    assert miter.current() == (b"abd", VAL)


def test_merging_real():
    it1 = map_of(b"aba", b"abc", b"abe").iter()
    it2 = map_of(b"abb", b"abd").iter()
    miter = MergingIter([it1, it2])
    assert [key for key, _ in miter] == [b"aba", b"abb", b"abc", b"abd", b"abe"]


def test_merging_seek_reset():
    it1 = map_of(b"aba", b"abc", b"abe").iter()
    it2 = map_of(b"abb", b"abd").iter()
    miter = MergingIter([it1, it2])

    assert not miter.valid()
    miter.advance()
    assert miter.valid()
    assert miter.current() == (b"aba", VAL)

    miter.seek(b"abc")
    assert miter.current() == (b"abc", VAL)
    miter.seek(b"ab0")
    assert miter.current() == (b"aba", VAL)
    miter.seek(b"abx")
    assert miter.current() is None

    miter.reset()
    assert not miter.valid()
    miter.next_entry()
    assert miter.current() == (b"aba", VAL)


def test_merging_prev_before_start():
    miter = MergingIter([map_of(b"aba").iter()])
    assert miter.prev() is False
    assert miter.current() is None


def test_merging_custom_comparator():
    def reverse(a, b):
        return (a < b) - (a > b)

    first = SkipMap(reverse)
    second = SkipMap(reverse)
    for key in (b"c", b"a"):
        first.insert(key, VAL)
    second.insert(b"b", VAL)
    miter = MergingIter([first.iter(), second.iter()], reverse)
    assert [key for key, _ in miter] == [b"c", b"b", b"a"]