from __future__ import annotations

from types import SimpleNamespace
import unittest

from wsrun.specifier import TargetSpecifier, make_target_specifier


class TargetSpecifierTests(unittest.TestCase):
    def test_compact_form_with_discrete_configuration_override(self) -> None:
        options = SimpleNamespace(target="app:build:production", project=None, configuration="staging")
        spec = make_target_specifier(options, None)
        self.assertEqual(spec, TargetSpecifier(project="app", target="build", configuration="staging"))

    def test_compact_form_keeps_embedded_configuration(self) -> None:
        options = SimpleNamespace(target="app:build:production", project="ignored", configuration=None)
        spec = make_target_specifier(options, "test")
        self.assertEqual(spec, TargetSpecifier(project="app", target="build", configuration="production"))

    def test_discrete_options_use_fixed_target(self) -> None:
        options = SimpleNamespace(target=None, project="lib", configuration="ci")
        spec = make_target_specifier(options, "test")
        self.assertEqual(spec, TargetSpecifier(project="lib", target="test", configuration="ci"))

    def test_missing_values_normalize_to_empty_strings(self) -> None:
        spec = make_target_specifier(SimpleNamespace(), "lint")
        self.assertEqual(spec.project, "")
        self.assertEqual(spec.configuration, "")
        self.assertEqual(spec.target, "lint")

    def test_partial_compact_form(self) -> None:
        spec = TargetSpecifier.parse("app")
        self.assertEqual(spec, TargetSpecifier(project="app"))
        self.assertEqual(str(TargetSpecifier.parse("app:build")), "app:build")

    def test_configurations_split_on_commas(self) -> None:
        spec = TargetSpecifier(project="app", target="build", configuration="production, de ,")
        self.assertEqual(spec.configurations, ["production", "de"])
        self.assertEqual(spec.with_project("lib").project, "lib")


if __name__ == "__main__":
    unittest.main()
