"""
Import-boundary enforcement for the approval packages.

1. Kernel isolation    -- approval_kernel/** may not import engines,
                          services, or config.
2. Domain purity       -- approval_kernel/domain/** may not import the ORM,
                          DB drivers, or any other kernel layer.
3. Engine purity       -- approval_engines/** may not import DB, ORM,
                          models, services, selectors, or config.
4. Engine no-impure    -- approval_engines/** may not read the wall clock
                          or the environment.
5. Config centralisation -- outside approval_config, only the package
                          facade and its schema may be imported.

All scanning is done via AST -- these tests are read-only.
"""

import ast
import glob
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _python_files(package: str) -> list[str]:
    """Return all .py files under *package*, sorted for deterministic order."""
    return sorted(glob.glob(f"{ROOT / package}/**/*.py", recursive=True))


def _extract_imports(filepath: str) -> list[tuple[int, str]]:
    """Return (line_number, module_string) for every import in *filepath*."""
    try:
        tree = ast.parse(Path(filepath).read_text(), filename=filepath)
    except (SyntaxError, UnicodeDecodeError):
        return []

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                results.append((node.lineno, node.module))
    return results


def _extract_attribute_calls(filepath: str) -> list[tuple[int, str]]:
    """Return (line_number, 'receiver.attr') for two-level attribute references."""
    try:
        tree = ast.parse(Path(filepath).read_text(), filename=filepath)
    except (SyntaxError, UnicodeDecodeError):
        return []

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Attribute) and isinstance(node.value, ast.Name):
            results.append((node.lineno, f"{node.value.id}.{node.attr}"))
    return results


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    """True if *module* equals or is a child of any prefix."""
    return any(module == p or module.startswith(f"{p}.") for p in prefixes)


def _violations(package: str, forbidden: tuple[str, ...]) -> list[str]:
    found = []
    for filepath in _python_files(package):
        for lineno, module in _extract_imports(filepath):
            if _matches_any(module, forbidden):
                rel = Path(filepath).relative_to(ROOT)
                found.append(f"  {rel}:{lineno} imports '{module}'")
    return found


class TestPackagesExist:
    def test_scanned_packages_contain_python_files(self):
        """Guard against the scans silently passing over empty globs."""
        for package in ("approval_kernel", "approval_engines", "approval_services",
                        "approval_config"):
            assert _python_files(package), f"no python files found under {package}"


class TestKernelIsolation:
    """approval_kernel/** depends on nothing above it."""

    FORBIDDEN_PREFIXES = ("approval_engines", "approval_services", "approval_config")

    def test_kernel_has_no_upward_imports(self):
        violations = _violations("approval_kernel", self.FORBIDDEN_PREFIXES)
        assert not violations, (
            "Kernel isolation violation -- approval_kernel/** must not import "
            "engines, services or config:\n" + "\n".join(violations)
        )


class TestDomainPurity:
    """approval_kernel/domain/** holds value objects only."""

    FORBIDDEN_PREFIXES = (
        "sqlalchemy",
        "psycopg2",
        "sqlite3",
        "yaml",
        "approval_kernel.db",
        "approval_kernel.models",
        "approval_kernel.services",
        "approval_kernel.selectors",
    )

    def test_domain_has_no_io_imports(self):
        violations = _violations("approval_kernel/domain", self.FORBIDDEN_PREFIXES)
        assert not violations, (
            "Domain purity violation -- approval_kernel/domain/** must not import "
            "persistence or service layers:\n" + "\n".join(violations)
        )


class TestEnginePurity:
    """approval_engines/** are pure functions over domain values."""

    FORBIDDEN_PREFIXES = (
        "sqlalchemy",
        "psycopg2",
        "sqlite3",
        "approval_kernel.db",
        "approval_kernel.models",
        "approval_kernel.services",
        "approval_kernel.selectors",
        "approval_services",
        "approval_config",
    )

    FORBIDDEN_CALLS = frozenset({
        "datetime.now",
        "datetime.utcnow",
        "date.today",
        "time.time",
        "os.environ",
        "os.getenv",
    })

    def test_engine_files_have_no_forbidden_imports(self):
        violations = _violations("approval_engines", self.FORBIDDEN_PREFIXES)
        assert not violations, (
            "Engine purity violation -- approval_engines/** must not import "
            "DB drivers, ORM, kernel persistence, services or config:\n"
            + "\n".join(violations)
        )

    def test_no_impure_calls_in_engines(self):
        """Engines take the instant as a parameter; time.monotonic is allowed
        for trace durations."""
        violations = []
        for filepath in _python_files("approval_engines"):
            for lineno, qualname in _extract_attribute_calls(filepath):
                if qualname in self.FORBIDDEN_CALLS:
                    rel = Path(filepath).relative_to(ROOT)
                    violations.append(f"  {rel}:{lineno} calls '{qualname}'")
        assert not violations, (
            "Engine impurity violation -- use an explicit clock parameter:\n"
            + "\n".join(violations)
        )


class TestConfigCentralization:
    """Runtime code reaches configuration only through the package facade."""

    ALLOWED = frozenset({"approval_config", "approval_config.schema"})

    def test_only_facade_and_schema_imported_outside_config(self):
        violations = []
        for package in ("approval_kernel", "approval_engines", "approval_services"):
            for filepath in _python_files(package):
                for lineno, module in _extract_imports(filepath):
                    if _matches_any(module, ("approval_config",)) and module not in self.ALLOWED:
                        rel = Path(filepath).relative_to(ROOT)
                        violations.append(f"  {rel}:{lineno} imports '{module}'")
        assert not violations, (
            "Config centralisation violation -- import approval_config or "
            "approval_config.schema only:\n" + "\n".join(violations)
        )
