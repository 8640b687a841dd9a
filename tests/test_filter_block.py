import pytest

from ldbcore.errors import Status
from ldbcore.filter import BloomPolicy
from ldbcore.filter_block import (
    FILTER_BASE_LOG2,
    FilterBlockBuilder,
    FilterBlockReader,
    get_filter_index,
)

KEYS = [b"abcd", b"efgh", b"ijkl", b"mnopqrstuvwxyz"]

EXPECTED_BLOCK = bytes(
    [
        234, 195, 25, 155, 61, 141, 173, 140, 221, 28, 222, 92, 220, 112, 234, 227, 22,
        234, 195, 25, 155, 61, 141, 173, 140, 221, 28, 222, 92, 220, 112, 234, 227, 22, 0,
        0, 0, 0, 17, 0, 0, 0, 17, 0, 0, 0, 34, 0, 0, 0, 11,
    ]
)


def produce_filter_block() -> bytes:
    builder = FilterBlockBuilder(BloomPolicy(32))
    builder.start_block(0)
    for key in KEYS:
        builder.add_key(key)
    builder.start_block(5000)
    for key in KEYS:
        builder.add_key(key)
    return builder.finish()


def test_filter_index():
    assert get_filter_index(3777, FILTER_BASE_LOG2) == 1
    assert get_filter_index(10000, FILTER_BASE_LOG2) == 4


def test_filter_block_builder():
    result = produce_filter_block()
    assert len(result) == 2 * (len(KEYS) * 4 + 1) + (3 * 4) + 5
    assert result == EXPECTED_BLOCK


def test_filter_block_build_read():
    reader = FilterBlockReader(BloomPolicy(32), produce_filter_block())
    assert reader.offset_of(get_filter_index(5121, FILTER_BASE_LOG2)) == 17

    unknown_keys = [b"xsb", b"9sad", b"assssaaaass"]
    for block_offset in (0, 1024, 5000, 6025):
        for key in KEYS:
            assert reader.key_may_match(block_offset, key), (block_offset, key)
        for key in unknown_keys:
            assert not reader.key_may_match(block_offset, key)


def test_reader_num_filters():
    reader = FilterBlockReader(BloomPolicy(32), produce_filter_block())
    assert reader.num() == 3


def test_offsets_beyond_filters_match_everything():
    reader = FilterBlockReader(BloomPolicy(32), produce_filter_block())
    assert reader.key_may_match(100_000, b"anything")


def test_empty_filter_range_is_reported():
    reader = FilterBlockReader(BloomPolicy(32), produce_filter_block())
    with pytest.raises(Status):
        reader.key_may_match(2048, b"abcd")


def test_reader_rejects_short_block():
    with pytest.raises(ValueError):
        FilterBlockReader(BloomPolicy(32), b"\x00\x00\x00")


def test_start_block_rejects_earlier_offset():
    builder = FilterBlockBuilder(BloomPolicy(32))
    builder.start_block(5000)
    with pytest.raises(ValueError):
        builder.start_block(0)


def test_builder_metadata():
    builder = FilterBlockBuilder(BloomPolicy(10))
    assert builder.filter_name() == "leveldb.BuiltinBloomFilter2"
    assert builder.size_estimate() == 5
    builder.start_block(5000)
    assert builder.size_estimate() == 5 + 2 * 4


def test_empty_builder_finish():
    assert FilterBlockBuilder(BloomPolicy(10)).finish() == bytes([0, 0, 0, 0, 11])