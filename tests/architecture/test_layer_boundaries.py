"""
Import-boundary enforcement for the governance layers.

1. Kernel isolation   -- governance_kernel/** never imports engines,
                         config or services.
2. Domain purity      -- governance_kernel/domain/** never imports the ORM,
                         the db package or the models.
3. Engine purity      -- governance_engines/** never imports the ORM, YAML,
                         kernel models/db, config or services, and never
                         reads the wall clock.
4. Config entrypoint  -- only governance_config/** imports its loader and
                         validator sub-modules.
5. Services over SQL  -- governance_services/** reaches storage only through
                         repository protocols, never through sqlalchemy.

All scanning is done via AST; these tests are read-only.
"""

import ast
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


def _python_files(package: str) -> list[Path]:
    return sorted((ROOT / package).rglob("*.py"))


def _extract_imports(filepath: Path) -> list[tuple[int, str]]:
    """Return (line_number, module_string) for every import in *filepath*."""
    tree = ast.parse(filepath.read_text(), filename=str(filepath))
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    return any(module == p or module.startswith(f"{p}.") for p in prefixes)


def _violations(package: str, forbidden: tuple[str, ...]) -> list[str]:
    found: list[str] = []
    for filepath in _python_files(package):
        for lineno, module in _extract_imports(filepath):
            if _matches_any(module, forbidden):
                found.append(f"  {filepath.relative_to(ROOT)}:{lineno} imports '{module}'")
    return found


class TestKernelIsolation:

    def test_kernel_imports_nothing_above_it(self):
        violations = _violations(
            "governance_kernel",
            ("governance_engines", "governance_config", "governance_services"),
        )
        assert not violations, "Kernel boundary violation:\n" + "\n".join(violations)

    def test_domain_is_pure(self):
        violations = _violations(
            "governance_kernel/domain",
            ("sqlalchemy", "governance_kernel.db", "governance_kernel.models"),
        )
        assert not violations, "Domain purity violation:\n" + "\n".join(violations)


class TestEnginePurity:

    FORBIDDEN_PREFIXES = (
        "sqlalchemy",
        "yaml",
        "governance_kernel.models",
        "governance_kernel.db",
        "governance_kernel.services",
        "governance_config",
        "governance_services",
    )

    IMPURE_CALLS = {"datetime.now", "datetime.utcnow", "time.time", "os.environ", "date.today"}

    def test_engine_files_have_no_forbidden_imports(self):
        violations = _violations("governance_engines", self.FORBIDDEN_PREFIXES)
        assert not violations, "Engine purity violation:\n" + "\n".join(violations)

    def test_engines_do_not_read_the_clock(self):
        violations: list[str] = []
        for filepath in _python_files("governance_engines"):
            tree = ast.parse(filepath.read_text(), filename=str(filepath))
            for node in ast.walk(tree):
                if isinstance(node, ast.Attribute) and isinstance(node.value, ast.Name):
                    name = f"{node.value.id}.{node.attr}"
                    if name in self.IMPURE_CALLS:
                        violations.append(f"  {filepath.relative_to(ROOT)}:{node.lineno} {name}")
        assert not violations, "Impure call in engines:\n" + "\n".join(violations)


class TestConfigEntrypoint:

    def test_internal_modules_only_used_inside_config(self):
        internal = ("governance_config.loader", "governance_config.validator")
        violations: list[str] = []
        for package in ("governance_kernel", "governance_engines", "governance_services"):
            violations.extend(_violations(package, internal))
        assert not violations, (
            "Use governance_config.load_configuration():\n" + "\n".join(violations)
        )


class TestServicesStorageBoundary:

    def test_services_do_not_touch_sqlalchemy(self):
        violations = _violations(
            "governance_services",
            ("sqlalchemy", "governance_kernel.models", "governance_kernel.db"),
        )
        assert not violations, "Services storage violation:\n" + "\n".join(violations)
