import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from template_fetch.session_store import SessionStore

_STATE = {"cookies": [{"name": "token", "value": "t1", "domain": ".aippt.cn", "path": "/"}], "origins": []}


class SessionStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "data" / "aippt_storage.json"
        self.store = SessionStore(self.path)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_missing_file_is_absent(self) -> None:
        self.assertIsNone(self.store.load("aippt.cn"))

    def test_save_then_load(self) -> None:
        self.store.save("aippt.cn", _STATE)
        self.assertEqual(self.store.load("aippt.cn"), _STATE)
        self.assertFalse(self.path.with_name(self.path.name + ".tmp").exists())

    def test_save_overwrites_previous_generation(self) -> None:
        self.store.save("aippt.cn", _STATE)
        newer = {"cookies": [{"name": "token", "value": "t2"}], "origins": []}
        self.store.save("aippt.cn", newer)
        payload = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(payload, newer)

    def test_corrupt_file_degrades_to_absent(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{not json", encoding="utf-8")
        self.assertIsNone(self.store.load("aippt.cn"))

    def test_wrong_shape_degrades_to_absent(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text(json.dumps({"cookies": "nope"}), encoding="utf-8")
        self.assertIsNone(self.store.load("aippt.cn"))

    def test_write_failure_is_swallowed(self) -> None:
        with patch("template_fetch.session_store.os.replace", side_effect=OSError("read-only file system")):
            self.store.save("aippt.cn", _STATE)
        self.assertFalse(self.path.exists())
        self.assertFalse(self.path.with_name(self.path.name + ".tmp").exists())

    def test_describe_and_clear(self) -> None:
        self.assertEqual(self.store.describe()["present"], False)
        self.store.save("aippt.cn", _STATE)
        summary = self.store.describe()
        self.assertTrue(summary["present"])
        self.assertTrue(summary["valid"])
        self.assertEqual(summary["cookies"], 1)
        self.assertTrue(self.store.clear())
        self.assertFalse(self.store.clear())


if __name__ == "__main__":
    unittest.main()
