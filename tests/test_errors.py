from __future__ import annotations

from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest import mock
import io
import tempfile
import unittest

from core.console import Console
from wsrun import diagnostics
from wsrun.errors import (
    ParseArgumentError,
    SchemaErrorDetail,
    SchemaValidationError,
    flag_for,
    report_missing_builder,
    translate_schema_errors,
)


def _additional(name: str) -> SchemaErrorDetail:
    return SchemaErrorDetail(
        keyword="additionalProperties",
        path="$",
        message=f"Property '{name}' is not allowed",
        params={"additionalProperty": name},
    )


class TranslateSchemaErrorsTests(unittest.TestCase):
    def test_user_supplied_properties_become_unknown_options(self) -> None:
        exc = SchemaValidationError([_additional("v"), _additional("verbose")])
        stderr = io.StringIO()
        with redirect_stderr(stderr):
            code = translate_schema_errors(exc, {"v": True, "verbose": True}, Console())
        self.assertEqual(code, 1)
        output = stderr.getvalue()
        self.assertIn("[FATAL] Unknown option: '-v'", output)
        self.assertIn("[FATAL] Unknown option: '--verbose'", output)
        self.assertNotIn("Schema validation failed", output)

    def test_other_errors_are_reported_together(self) -> None:
        exc = SchemaValidationError(
            [
                _additional("fromConfig"),
                SchemaErrorDetail(keyword="required", path="$", message="'outputPath' is a required property"),
            ]
        )
        stderr = io.StringIO()
        with redirect_stderr(stderr):
            code = translate_schema_errors(exc, {"project": "app"}, Console())
        self.assertEqual(code, 1)
        output = stderr.getvalue()
        self.assertIn("[ERROR] Schema validation failed", output)
        self.assertIn("$: Property 'fromConfig' is not allowed", output)
        self.assertIn("'outputPath' is a required property", output)
        self.assertNotIn("Unknown option", output)

    def test_flag_rendering(self) -> None:
        self.assertEqual(flag_for("c"), "-c")
        self.assertEqual(flag_for("watch"), "--watch")

    def test_parse_errors_join_messages(self) -> None:
        exc = ParseArgumentError(["first", "second"])
        self.assertEqual(str(exc), "first\nsecond")
        self.assertEqual(exc.errors, ["first", "second"])


class MissingBuilderReportTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_warns_when_nothing_is_installed(self) -> None:
        stderr = io.StringIO()
        with mock.patch.object(diagnostics, "_running_in_virtualenv", return_value=False), redirect_stderr(stderr):
            code = report_missing_builder("pkg:build", self.root, Console())
        self.assertEqual(code, 1)
        lines = stderr.getvalue().splitlines()
        self.assertEqual(
            lines,
            [
                "[WARN] Python packages may not be installed. Try installing with 'pip install -e .'.",
                "[FATAL] Could not find the 'pkg:build' builder's package.",
            ],
        )

    def test_no_warning_with_local_environment(self) -> None:
        venv = self.root / ".venv"
        venv.mkdir()
        (venv / "pyvenv.cfg").write_text("home = /usr/bin\n")
        stderr = io.StringIO()
        with mock.patch.object(diagnostics, "_running_in_virtualenv", return_value=False), redirect_stderr(stderr):
            report_missing_builder("pkg:build", self.root, Console())
        self.assertNotIn("[WARN]", stderr.getvalue())

    def test_installation_detection(self) -> None:
        with mock.patch.object(diagnostics, "_running_in_virtualenv", return_value=False):
            self.assertFalse(diagnostics.has_installed_dependencies(self.root))
            (self.root / "__pypackages__").mkdir()
            self.assertTrue(diagnostics.has_installed_dependencies(self.root))


class ConsoleTests(unittest.TestCase):
    def test_levels_filter_output(self) -> None:
        console = Console("warn")
        stdout, stderr = io.StringIO(), io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            console.info("hidden")
            console.debug("hidden")
            console.warn("shown")
            console.fatal("boom")
        self.assertEqual(stdout.getvalue(), "")
        self.assertEqual(stderr.getvalue(), "[WARN] shown\n[FATAL] boom\n")

    def test_none_silences_everything(self) -> None:
        stderr = io.StringIO()
        with redirect_stderr(stderr):
            Console("none").fatal("boom")
        self.assertEqual(stderr.getvalue(), "")

    def test_dry_messages_follow_dry_run_flag(self) -> None:
        stdout = io.StringIO()
        with redirect_stdout(stdout):
            Console().dry("skipped")
            Console(dry_run=True).dry("recorded")
        self.assertEqual(stdout.getvalue(), "[DRY] recorded\n")

    def test_unknown_level(self) -> None:
        with self.assertRaisesRegex(ValueError, "Unknown log level 'loud'"):
            Console("loud")


if __name__ == "__main__":
    unittest.main()
