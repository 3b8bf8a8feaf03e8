"""The domain package must not depend on the application or presentation layers."""

import ast
from pathlib import Path

import pytest

import sql_assistant.domain

DOMAIN_DIR = Path(sql_assistant.domain.__file__).parent
OUTER_LAYERS = ("sql_assistant.application", "sql_assistant.presentation", "sql_assistant.main")


def _imported_modules(path: Path) -> list[str]:
    tree = ast.parse(path.read_text(encoding="utf-8"))
    modules: list[str] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            modules.extend(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            modules.append(node.module)
    return modules


@pytest.mark.parametrize("path", sorted(DOMAIN_DIR.rglob("*.py")), ids=lambda p: p.name)
def test_domain_module_imports_stay_inside(path: Path):
    outward = [m for m in _imported_modules(path) if m.startswith(OUTER_LAYERS)]
    assert outward == []
