import io
import os
import json
import logging
import shutil
import tempfile
import unittest
from contextlib import redirect_stdout

from ..main import main, parse_job_arguments, import_jobs_module
from ..core.executor import default_registry
from ..core.sqlite_queue import SQLiteQueue
from ..interfaces.queue import QueueOptions
from ..errors import ConfigError
from .sample_jobs import RecordingJob


class TestCommandLine(unittest.TestCase):
    def setUp(self):
        RecordingJob.reset()
        default_registry.register(RecordingJob)
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "queue.sqlite")
        self.common = [
            "--db_path", self.db_path,
            "--config", os.path.join(self.temp_dir, "missing.json"),
            "--log_file", os.path.join(self.temp_dir, "stepwise.log"),
        ]

    def tearDown(self):
        for handler in logging.root.handlers[:]:
            handler.close()
            logging.root.removeHandler(handler)
        shutil.rmtree(self.temp_dir)

    def run_main(self, *args):
        out = io.StringIO()
        with redirect_stdout(out):
            code = main(self.common + list(args))
        return code, out.getvalue()

    def test_enqueue_then_work_in_burst_mode(self):
        code, output = self.run_main("enqueue", "RecordingJob", "--arg", "items=[1, 2, 3]", "--job_id", "cli-1")
        self.assertEqual(code, 0)
        self.assertIn("cli-1", output)

        code, output = self.run_main("work", "--burst", "--no_progress")
        self.assertEqual(code, 0)
        summary = json.loads(output)
        self.assertEqual(summary["runs"]["completed"], 1)
        self.assertEqual(summary["items_processed"], 3)
        self.assertEqual(RecordingJob.processed, [1, 2, 3])

        queue = SQLiteQueue.open(self.db_path, QueueOptions())
        try:
            self.assertEqual(queue.size(), 0)
            self.assertEqual(queue.failures(), [])
        finally:
            queue.close()

    def test_unknown_job_exits_with_error(self):
        code, _ = self.run_main("enqueue", "NoSuchJob")
        self.assertEqual(code, 1)

    def test_parse_job_arguments(self):
        self.assertEqual(parse_job_arguments(["n=3", "name=alpha", "ids=[1,2]", "flag=true"]),
                         {"n": 3, "name": "alpha", "ids": [1, 2], "flag": True})
        with self.assertRaises(ConfigError):
            parse_job_arguments(["novalue"])

    def test_import_jobs_module(self):
        import_jobs_module(None)
        with self.assertRaises(ConfigError):
            import_jobs_module("stepwise.tests.no_such_module")


if __name__ == '__main__':
    unittest.main()
