"""Building blocks of a LevelDB-style key-value store: environments, filters, keys, log, snapshots, skip map, memtable and merging iterator."""

__version__ = "0.1.0"