import json
import tempfile
import unittest
from pathlib import Path

from loguru import logger

from napkin_mcp_bridge.logging_config import NO_SESSION, setup_logging


class TestSetupLogging(unittest.TestCase):
    def tearDown(self) -> None:
        logger.remove()

    def _read_file_log(self, path: Path) -> str:
        logger.complete()
        logger.remove()
        return path.read_text()

    def test_default_is_console_only(self) -> None:
        self.assertEqual(["console (stderr, INFO)"], setup_logging())

    def test_file_consumer_writes_records(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "nested" / "bridge.log"
            descriptions = setup_logging(
                level="debug",
                consumers=[{"type": "file", "path": str(path), "level": "info"}],
            )
            logger.info("hello from the bridge")
            text = self._read_file_log(path)

        self.assertEqual([f"file ({path}, INFO, text, rotation 10 MB)"], descriptions)
        self.assertIn("hello from the bridge", text)
        self.assertIn(f"session={NO_SESSION}", text)

    def test_records_carry_the_request_session(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "bridge.log"
            setup_logging(consumers=[{"type": "file", "path": str(path)}])
            with logger.contextualize(session="sess-42"):
                logger.info("inside request")
            logger.info("outside request")
            lines = self._read_file_log(path).splitlines()

        self.assertIn("session=sess-42", lines[0])
        self.assertIn(f"session={NO_SESSION}", lines[1])

    def test_serialized_file_consumer_writes_json_lines(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "bridge.jsonl"
            descriptions = setup_logging(consumers=[{"type": "file", "path": str(path), "serialize": True}])
            logger.bind(session="sess-7").warning("structured")
            record = json.loads(self._read_file_log(path).splitlines()[0])["record"]

        self.assertIn("json lines", descriptions[0])
        self.assertEqual("structured", record["message"])
        self.assertEqual("sess-7", record["extra"]["session"])

    def test_unknown_type_and_bad_options_are_skipped(self) -> None:
        descriptions = setup_logging(
            consumers=[
                {"type": "syslog"},
                {"type": "console", "colour": True},
                {"type": "console", "stream": "stdout"},
            ]
        )
        self.assertEqual(["console (stdout, INFO)"], descriptions)


if __name__ == "__main__":
    unittest.main()
