from __future__ import annotations

from pathlib import Path
import tempfile
import unittest

from wsrun.errors import BuilderNotFoundError, MissingBuilderError, WorkspaceError
from wsrun.host import BuilderHost, split_builder_name
from wsrun.specifier import TargetSpecifier
from wsrun.workspace import Workspace

from wsrun_testing import TWO_PROJECTS, write_workspace


class BuilderHostTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.workspace = Workspace.load(write_workspace(self.root, TWO_PROJECTS))
        self.host = BuilderHost(self.workspace)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_builder_name_for_target(self) -> None:
        name = self.host.get_builder_name_for_target(TargetSpecifier(project="lib", target="test"))
        self.assertEqual(name, "wsrun_testing:watch")

    def test_resolve_builder_is_cached(self) -> None:
        first = self.host.resolve_builder("wsrun_testing:watch")
        second = self.host.resolve_builder("wsrun_testing:watch")
        self.assertIs(first, second)
        self.assertEqual([option.name for option in first.option_schema.options], ["watch", "reporter", "fail"])

    def test_builtin_schema_loaded_from_package_file(self) -> None:
        description = self.host.resolve_builder("wsrun.builders:run-commands")
        names = {option.name for option in description.option_schema.options}
        self.assertIn("commands", names)
        self.assertFalse(description.option_schema.allows_additional_properties)

    def test_missing_package_is_distinguishable(self) -> None:
        with self.assertRaises(MissingBuilderError) as ctx:
            self.host.resolve_builder("wsrun_no_such_package.sub:build")
        self.assertEqual(ctx.exception.builder_name, "wsrun_no_such_package.sub:build")

    def test_unknown_builder_in_existing_package(self) -> None:
        with self.assertRaisesRegex(BuilderNotFoundError, "Available builders"):
            self.host.resolve_builder("wsrun_testing:nope")

    def test_invalid_identifier(self) -> None:
        with self.assertRaises(WorkspaceError):
            split_builder_name("no-colon")
        self.assertEqual(split_builder_name("a.b:c"), ("a.b", "c"))

    def test_merged_options_are_independent_copies(self) -> None:
        workspace = Workspace.load(
            write_workspace(
                self.root,
                """
                [projects.app.targets.test]
                builder = "wsrun_testing:tags"

                [projects.app.targets.test.configurations.ci]
                labels = { runner = "linux" }
                """,
            )
        )
        host = BuilderHost(workspace)
        spec = TargetSpecifier(project="app", target="test", configuration="ci")
        first = host.get_options_for_target(spec)
        first["tags"].append("mutated")
        first["labels"]["runner"] = "mutated"

        second = host.get_options_for_target(spec)
        self.assertEqual(second, {"tags": [], "labels": {"runner": "linux"}})
        self.assertEqual(host.resolve_builder("wsrun_testing:tags").option_schema.defaults()["tags"], [])

    def test_options_use_default_configuration(self) -> None:
        options = self.host.get_options_for_target(TargetSpecifier(project="app", target="build"))
        self.assertEqual(options, {"optimization": True, "outputPath": "dist/app"})

    def test_explicit_configurations_apply_in_order(self) -> None:
        spec = TargetSpecifier(project="app", target="build", configuration="staging,production")
        options = self.host.get_options_for_target(spec)
        self.assertEqual(options, {"optimization": True, "outputPath": "dist/staging"})

    def test_schema_defaults_fill_missing_options(self) -> None:
        options = self.host.get_options_for_target(TargetSpecifier(project="lib", target="build"))
        self.assertEqual(options, {"optimization": False, "outputPath": "dist/lib"})

    def test_unknown_configuration(self) -> None:
        spec = TargetSpecifier(project="lib", target="build", configuration="production")
        with self.assertRaisesRegex(WorkspaceError, "Configuration 'production' is not set"):
            self.host.get_options_for_target(spec)


if __name__ == "__main__":
    unittest.main()
