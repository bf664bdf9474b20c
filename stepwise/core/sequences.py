# stepwise/core/sequences.py

"""
Ready-made sequence builders for ``build_sequence``.

Every builder takes the resume cursor of the last processed item (None for
a fresh job) and returns a lazy iterator of ``(item, cursor)`` pairs that
starts right after it. Arguments are checked eagerly, so a bad cursor fails
while the sequence is being built rather than on the first pull.
"""

import re
import csv
import sqlite3
import logging
import itertools
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from ..database import SQLiteDBConnection
from ..errors import SequenceThrottled

logger = logging.getLogger(__name__)

Pair = Tuple[Any, Any]
Database = Union[SQLiteDBConnection, sqlite3.Connection]

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_index_cursor(cursor: Any) -> int:
    """Position to start from for an index cursor."""
    if cursor is None:
        return 0
    if not isinstance(cursor, int) or isinstance(cursor, bool):
        raise TypeError(f"Cursor must be an int index, got {type(cursor).__name__} {cursor!r}")
    if cursor < -1:
        raise ValueError(f"Cursor must not be below -1, got {cursor}")
    return cursor + 1


def _check_identifier(name: str, what: str) -> str:
    if not _IDENTIFIER.match(name or ""):
        raise ValueError(f"Invalid {what} name: {name!r}")
    return name


def array_sequence(items: Sequence[Any], cursor: Optional[int] = None) -> Iterator[Pair]:
    """Items of an in-memory list; the cursor is the item's index."""
    if not isinstance(items, (list, tuple)):
        raise TypeError(f"array_sequence needs a list or tuple, got {type(items).__name__}")
    start = _check_index_cursor(cursor)
    return ((items[index], index) for index in range(start, len(items)))


def range_sequence(count: int, cursor: Optional[int] = None) -> Iterator[Pair]:
    """The integers ``0 .. count-1``; each is its own cursor."""
    start = _check_index_cursor(cursor)
    return ((index, index) for index in range(start, count))


def csv_sequence(path: Union[str, Path], cursor: Optional[int] = None, **reader_options: Any) -> Iterator[Pair]:
    """
    Rows of a CSV file as dicts keyed by the header row.
    The cursor is the 0-based row index, header excluded.
    """
    csv_path = Path(path)
    if not csv_path.is_file():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")
    start = _check_index_cursor(cursor)
    return _iterate_csv(csv_path, start, reader_options)


def _iterate_csv(csv_path: Path, start: int, reader_options: dict) -> Iterator[Pair]:
    with open(csv_path, "r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f, **reader_options)
        for index, row in enumerate(itertools.islice(reader, start, None), start=start):
            yield dict(row), index


def records_sequence(db: Database, table: str, cursor: Any = None,
                     key: str = "id", batch_size: int = 100,
                     columns: Optional[List[str]] = None) -> Iterator[Pair]:
    """
    Rows of an SQLite table in ``key`` order, fetched ``batch_size`` at a
    time with keyset pagination. The cursor is the last row's key value.

    ``db`` is a SQLiteDBConnection or a plain ``sqlite3.Connection``.
    A run that stops mid-table pulls one row past its last processed item
    before stopping, which can cost one batch query the next run repeats.
    """
    return (
        (row, row[key])
        for batch, _ in record_batches_sequence(db, table, cursor, key, batch_size, columns)
        for row in batch
    )


def record_batches_sequence(db: Database, table: str, cursor: Any = None,
                            key: str = "id", batch_size: int = 100,
                            columns: Optional[List[str]] = None) -> Iterator[Pair]:
    """
    Like ``records_sequence`` but yields whole batches; the cursor is the
    batch's last key. An interrupted run fetches one more batch than it
    processes, and the next run fetches it again.
    """
    _check_identifier(table, "table")
    _check_identifier(key, "key column")
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    if columns:
        for column in columns:
            _check_identifier(column, "column")
        if key not in columns:
            columns = [key] + list(columns)
        selected = ", ".join(columns)
    else:
        selected = "*"
    return _iterate_batches(db, table, cursor, key, batch_size, selected)


def _fetch_rows(db: Database, sql: str, params: tuple) -> List[dict]:
    if isinstance(db, sqlite3.Connection):
        cur = db.execute(sql, params)
        names = [column[0] for column in cur.description]
        return [dict(zip(names, row)) for row in cur.fetchall()]
    return db.fetchall(sql, params)


def _iterate_batches(db: Database, table: str, cursor: Any,
                     key: str, batch_size: int, selected: str) -> Iterator[Pair]:
    last_key = cursor
    while True:
        if last_key is None:
            sql = f"SELECT {selected} FROM {table} ORDER BY {key} LIMIT ?"
            params: tuple = (batch_size,)
        else:
            sql = f"SELECT {selected} FROM {table} WHERE {key} > ? ORDER BY {key} LIMIT ?"
            params = (last_key, batch_size)
        rows = _fetch_rows(db, sql, params)
        if not rows:
            return
        last_key = rows[-1][key]
        logger.debug(f"Fetched {len(rows)} rows from '{table}' up to {key}={last_key!r}")
        yield rows, last_key
        if len(rows) < batch_size:
            return


def nested_sequence(builders: List[Callable[..., Iterable[Pair]]], cursor: Optional[List[Any]] = None) -> Iterator[Pair]:
    """
    Iterate nested sequences, e.g. every comment of every post.

    ``builders[0]`` is called as ``builder(cursor)``; every deeper builder as
    ``builder(cursor, *outer_items)``. Yields the innermost items with a list
    cursor holding one cursor per level. An outer level's cursor only moves
    on once all of its inner items are done, so resuming re-enters the outer
    item that was in progress.
    """
    if not builders:
        raise ValueError("nested_sequence needs at least one builder")
    if cursor is None:
        cursors = [None] * len(builders)
    elif not isinstance(cursor, list) or len(cursor) != len(builders):
        raise TypeError(f"Cursor must be a list of {len(builders)} cursors, got {cursor!r}")
    else:
        cursors = list(cursor)
    return _iterate_nested(builders, cursors, 0, ())


def _iterate_nested(builders: List[Callable[..., Iterable[Pair]]], cursors: List[Any],
                    depth: int, outer_items: tuple) -> Iterator[Pair]:
    innermost = depth == len(builders) - 1
    for item, item_cursor in builders[depth](cursors[depth], *outer_items):
        if innermost:
            cursors[depth] = item_cursor
            yield item, list(cursors)
        else:
            yield from _iterate_nested(builders, cursors, depth + 1, outer_items + (item,))
            cursors[depth] = item_cursor
            for deeper in range(depth + 1, len(builders)):
                cursors[deeper] = None


def throttle_sequence(sequence: Iterable[Pair], throttle_on: Callable[[], bool],
                      backoff: float = 30.0) -> Iterator[Pair]:
    """
    Wrap a sequence so that it stops the run while ``throttle_on()`` is true,
    e.g. when a database replica is lagging. The check runs before each pull;
    the runner checkpoints the last processed item and resubmits the job
    ``backoff`` seconds later.
    """
    iterator = iter(sequence)
    while True:
        if throttle_on():
            raise SequenceThrottled(backoff)
        try:
            pair = next(iterator)
        except StopIteration:
            return
        yield pair
