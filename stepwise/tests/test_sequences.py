import os
import csv
import shutil
import sqlite3
import tempfile
import unittest

from ..core.sequences import (
    array_sequence,
    range_sequence,
    csv_sequence,
    records_sequence,
    record_batches_sequence,
    nested_sequence,
    throttle_sequence,
)
from ..database import SQLiteDBConnection
from ..errors import SequenceThrottled


class TestIndexSequences(unittest.TestCase):
    def test_array_from_start(self):
        self.assertEqual(list(array_sequence(["a", "b", "c"])), [("a", 0), ("b", 1), ("c", 2)])

    def test_array_resumes_after_cursor(self):
        self.assertEqual(list(array_sequence(["a", "b", "c"], 1)), [("c", 2)])
        self.assertEqual(list(array_sequence(["a", "b", "c"], 2)), [])

    def test_array_rejects_bad_input(self):
        with self.assertRaises(TypeError):
            array_sequence({"a": 1})
        with self.assertRaises(TypeError):
            array_sequence([1, 2], "1")
        with self.assertRaises(TypeError):
            array_sequence([1, 2], True)
        with self.assertRaises(ValueError):
            array_sequence([1, 2], -5)

    def test_range(self):
        self.assertEqual(list(range_sequence(4, 1)), [(2, 2), (3, 3)])

    def test_resuming_from_every_cursor_reproduces_the_rest(self):
        items = list("abcdef")
        full = list(array_sequence(items))
        for position, (_, cursor) in enumerate(full):
            with self.subTest(cursor=cursor):
                self.assertEqual(list(array_sequence(items, cursor)), full[position + 1:])


class TestCsvSequence(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.path = os.path.join(self.temp_dir, "people.csv")
        with open(self.path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(["name", "city"])
            writer.writerow(["Ada", "London"])
            writer.writerow(["Grace", "Arlington"])
            writer.writerow(["Linus", "Helsinki"])

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_rows_with_index_cursor(self):
        rows = list(csv_sequence(self.path))
        self.assertEqual(rows[0], ({"name": "Ada", "city": "London"}, 0))
        self.assertEqual([cursor for _, cursor in rows], [0, 1, 2])

    def test_resume(self):
        rows = list(csv_sequence(self.path, 1))
        self.assertEqual(rows, [({"name": "Linus", "city": "Helsinki"}, 2)])

    def test_missing_file_fails_eagerly(self):
        with self.assertRaises(FileNotFoundError):
            csv_sequence(os.path.join(self.temp_dir, "missing.csv"))


class TestRecordSequences(unittest.TestCase):
    def setUp(self):
        self.db = SQLiteDBConnection(":memory:", queue_tables=False)
        self.db.execute("CREATE TABLE products (id INTEGER PRIMARY KEY, name TEXT)")
        for product_id in range(1, 8):
            self.db.execute("INSERT INTO products (id, name) VALUES (?, ?)", (product_id, f"p{product_id}"))
        self.db.commit()

    def tearDown(self):
        self.db.close()

    def test_data_database_gets_no_queue_tables(self):
        tables = self.db.fetchall("SELECT name FROM sqlite_master WHERE type = 'table'")
        self.assertEqual([table["name"] for table in tables], ["products"])

    def test_plain_sqlite_connection(self):
        conn = sqlite3.connect(":memory:")
        try:
            conn.execute("CREATE TABLE events (seq INTEGER PRIMARY KEY, kind TEXT)")
            conn.executemany("INSERT INTO events (seq, kind) VALUES (?, ?)",
                             [(10, "a"), (20, "b"), (30, "c")])
            pairs = list(records_sequence(conn, "events", cursor=10, key="seq", batch_size=1))
        finally:
            conn.close()

        self.assertEqual(pairs, [({"seq": 20, "kind": "b"}, 20), ({"seq": 30, "kind": "c"}, 30)])

    def test_records_in_key_order(self):
        pairs = list(records_sequence(self.db, "products", batch_size=3))
        self.assertEqual([cursor for _, cursor in pairs], list(range(1, 8)))
        self.assertEqual(pairs[0][0]["name"], "p1")

    def test_records_resume_after_key(self):
        pairs = list(records_sequence(self.db, "products", cursor=5, batch_size=2))
        self.assertEqual([cursor for _, cursor in pairs], [6, 7])

    def test_batches(self):
        batches = list(record_batches_sequence(self.db, "products", batch_size=3, columns=["name"]))
        self.assertEqual([cursor for _, cursor in batches], [3, 6, 7])
        self.assertEqual([len(rows) for rows, _ in batches], [3, 3, 1])
        self.assertEqual(set(batches[0][0][0].keys()), {"id", "name"})

    def test_rejects_unsafe_identifiers(self):
        with self.assertRaises(ValueError):
            records_sequence(self.db, "products; DROP TABLE products")
        with self.assertRaises(ValueError):
            record_batches_sequence(self.db, "products", batch_size=0)


class TestNestedSequence(unittest.TestCase):
    def setUp(self):
        self.posts = {"p1": ["c1", "c2"], "p2": [], "p3": ["c3"]}
        post_ids = list(self.posts)
        self.builders = [
            lambda cursor: array_sequence(post_ids, cursor),
            lambda cursor, post: array_sequence(self.posts[post], cursor),
        ]

    def test_flattens_with_one_cursor_per_level(self):
        pairs = list(nested_sequence(self.builders))
        self.assertEqual(pairs, [
            ("c1", [None, 0]),
            ("c2", [None, 1]),
            ("c3", [1, 0]),
        ])

    def test_resume_reenters_outer_item_in_progress(self):
        self.assertEqual(list(nested_sequence(self.builders, [None, 0])), [("c2", [None, 1]), ("c3", [1, 0])])
        self.assertEqual(list(nested_sequence(self.builders, [None, 1])), [("c3", [1, 0])])

    def test_rejects_bad_cursor(self):
        with self.assertRaises(TypeError):
            nested_sequence(self.builders, 3)
        with self.assertRaises(ValueError):
            nested_sequence([])


class TestThrottleSequence(unittest.TestCase):
    def test_passes_through_when_not_throttled(self):
        self.assertEqual(list(throttle_sequence(array_sequence([1, 2]), lambda: False)), [(1, 0), (2, 1)])

    def test_raises_before_pulling(self):
        checks = iter([False, True])
        sequence = throttle_sequence(array_sequence([1, 2, 3]), lambda: next(checks), backoff=7.0)

        self.assertEqual(next(sequence), (1, 0))
        with self.assertRaises(SequenceThrottled) as ctx:
            next(sequence)
        self.assertEqual(ctx.exception.backoff, 7.0)


if __name__ == '__main__':
    unittest.main()
