import io
import logging
import unittest

from template_fetch.logging_config import setup_logging


class LoggingConfigTests(unittest.TestCase):
    def tearDown(self) -> None:
        logging.getLogger("template_fetch").handlers = []

    def test_short_module_names_outside_debug(self) -> None:
        stream = io.StringIO()
        setup_logging("info", stream=stream, force=True)
        logging.getLogger("template_fetch.web_download").info("clicked %s", "button.ml-3")
        logging.getLogger("template_fetch.web_download").debug("hidden")
        output = stream.getvalue()
        self.assertIn("[web_download] clicked button.ml-3", output)
        self.assertNotIn("hidden", output)

    def test_debug_keeps_full_names(self) -> None:
        stream = io.StringIO()
        setup_logging("debug", stream=stream, force=True)
        logging.getLogger("template_fetch.artifact").debug("saved")
        self.assertIn("[template_fetch.artifact] saved", stream.getvalue())

    def test_second_call_keeps_existing_handler(self) -> None:
        first = io.StringIO()
        setup_logging("info", stream=first, force=True)
        setup_logging("debug", stream=io.StringIO())
        logging.getLogger("template_fetch.cli").info("kept")
        self.assertIn("kept", first.getvalue())

    def test_unknown_level_falls_back_to_info(self) -> None:
        logger = setup_logging("chatty", stream=io.StringIO(), force=True)
        self.assertEqual(logger.level, logging.INFO)


if __name__ == "__main__":
    unittest.main()
