import io
import logging
import tempfile
import unittest
from pathlib import Path

from critique.utils.logging import (
    CritiqueFormatter,
    get_logger,
    log_error,
    log_operation,
    setup_logging,
)


class LoggingTest(unittest.TestCase):
    def setUp(self) -> None:
        root = logging.getLogger("critique")
        saved = (root.level, list(root.handlers), root.propagate)

        def restore() -> None:
            for handler in root.handlers:
                handler.close()
            root.setLevel(saved[0])
            root.handlers = saved[1]
            root.propagate = saved[2]

        self.addCleanup(restore)

        self.stream = io.StringIO()
        self.handler = logging.StreamHandler(self.stream)
        self.handler.setFormatter(CritiqueFormatter(use_colors=False))
        self.logger = get_logger("domain.orchestration.executor")
        self.logger.addHandler(self.handler)
        self.logger.setLevel(logging.DEBUG)
        self.addCleanup(self.logger.removeHandler, self.handler)
        self.addCleanup(self.logger.setLevel, logging.NOTSET)

    def test_names_are_placed_under_critique(self) -> None:
        self.assertEqual(get_logger("agents.base").name, "critique.agents.base")
        self.assertEqual(get_logger("critique.agents.registry").name, "critique.agents.registry")
        self.assertIs(get_logger("agents.base"), get_logger("critique.agents.base"))

    def test_operation_is_tagged_with_analysis_id(self) -> None:
        log_operation(self.logger, "fast_tier_start", {"analysis_id": "an-1", "workers": ["style"]})

        line = self.stream.getvalue()
        self.assertIn("[orchestration.executor]", line)
        self.assertIn("(an-1)", line)
        self.assertIn("fast_tier_start: workers=['style']", line)
        self.assertNotIn("analysis_id=", line)

    def test_error_includes_context_and_traceback(self) -> None:
        try:
            raise RuntimeError("worker pool exhausted")
        except RuntimeError as exc:
            log_error(self.logger, "research_continuation", exc, {"analysis_id": "an-2", "stage": "research"})

        output = self.stream.getvalue()
        self.assertIn("research_continuation failed: RuntimeError: worker pool exhausted | stage=research", output)
        self.assertIn("(an-2)", output)
        self.assertIn("Traceback", output)

    def test_setup_installs_handlers_on_critique_logger(self) -> None:
        with tempfile.TemporaryDirectory() as log_dir:
            setup_logging(level="DEBUG", log_dir=log_dir, console_output=True, file_output=True)
            root = logging.getLogger("critique")

            self.assertEqual(root.level, logging.DEBUG)
            self.assertFalse(root.propagate)
            self.assertEqual(len(root.handlers), 2)

            get_logger("session").info("session started")
            for handler in root.handlers:
                handler.flush()
                handler.close()
            root.handlers = []

            self.assertIn("session started", (Path(log_dir) / "critique.log").read_text(encoding="utf-8"))

    def test_file_output_needs_a_directory(self) -> None:
        setup_logging(level="INFO", console_output=False, file_output=True)

        self.assertEqual(logging.getLogger("critique").handlers, [])


if __name__ == "__main__":
    unittest.main()
