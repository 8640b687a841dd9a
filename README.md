# ldbcore

Building blocks of a LevelDB-style key-value store, in pure Python with no
third-party dependencies.

## Modules

- `ldbcore.errors`: the `Status` exception, carrying a `StatusCode`, and
  `status_from_oserror()` for converting `OSError`s.
- `ldbcore.env`: the abstract `Env` (files, directories, locks, loggers,
  clock), `RandomAccess`, `FileLock`, `Logger`, and the helpers `micros()`,
  `sleep_for()` and `stderr_logger()`.
- `ldbcore.mem_env`: `MemEnv`, an environment keeping every file in memory
  (`MemFS`, `MemFile`, `MemFileReader`, `MemFileWriter`).
- `ldbcore.disk_env`: `DiskEnv`, an environment on the local file system
  with exclusive file locks. Note that `open_writable_file` writes from the
  start of the file without truncating it.
- `ldbcore.filter`: `BloomPolicy`, `NoFilterPolicy` and
  `InternalFilterPolicy` (which strips the 8-byte tag from internal keys),
  plus `bloom_hash()`.
- `ldbcore.filter_block`: `FilterBlockBuilder` and `FilterBlockReader`,
  one filter per 2 KiB range of data offsets.
- `ldbcore.key_types`: `ValueType`, `LookupKey`, varint encoding, and
  building, parsing and comparing memtable and internal keys.
- `ldbcore.log`: the write-ahead log format, `LogWriter` and `LogReader`,
  with masked CRC-32C checksums (`crc32c()`, `mask_crc()`, `unmask_crc()`).
- `ldbcore.snapshot`: `SnapshotList` and `Snapshot`; a snapshot is removed
  by `release()`, on leaving a `with` block, or when it is garbage-collected.
- `ldbcore.skipmap`: the positioned `LdbIterator` protocol, `SkipMap` and
  `SkipMapIterator`. Empty or duplicate keys raise `ValueError`.
- `ldbcore.memtable`: `MemTable` and `MemtableIterator`.
- `ldbcore.merging_iter`: `MergingIter`, merging several sorted
  `LdbIterator`s.

## Installation

```
pip install .
```

## Examples

```python
from ldbcore.key_types import LookupKey, ValueType
from ldbcore.memtable import MemTable

table = MemTable()
table.add(120, ValueType.TYPE_VALUE, b"abc", b"123")
value, deleted = table.get(LookupKey(b"abc", 200))
assert value == b"123" and not deleted
```

```python
import io
from ldbcore.log import LogWriter, LogReader

buffer = io.BytesIO()
writer = LogWriter(buffer)
writer.add_record(b"hello")
buffer.seek(0)
assert LogReader(buffer).read() == b"hello"
```

```python
from ldbcore.filter import BloomPolicy

policy = BloomPolicy(10)
bloom = policy.create_filter([b"alpha", b"beta"])
assert policy.key_may_match(b"alpha", bloom)
```

Failures raise `ldbcore.errors.Status`; its `code` attribute tells what went
wrong, e.g. `StatusCode.NOT_FOUND` or `StatusCode.CORRUPTION`.

## What this package does not do

These are components only. There is no database object to open, write to
or read from, no table files (sorted tables, their blocks, index or cache),
no compaction, no block compression and no command-line program. The
pieces above are what such a store would be assembled from.

## Running the tests

```
pip install .[test]
pytest
```