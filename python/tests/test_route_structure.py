"""Structural tests for route code.

Routes are transport-only:
- No domain logic or raw DB access
- Imports limited to FastAPI, typing, the request/response layer and services
"""

import ast
from pathlib import Path

import pytest

ROUTES_DIR = Path(__file__).parent.parent / "cofish" / "api" / "routes"

ALLOWED_MODULE_PREFIXES = (
    "fastapi",
    "typing",
    "uuid",
    "sqlalchemy.orm",  # Session annotation only
    "cofish.api.deps",
    "cofish.auth.middleware",
    "cofish.responses",
    "cofish.errors",
    "cofish.schemas",
    "cofish.services",
)


def get_all_route_files() -> list[Path]:
    return sorted(f for f in ROUTES_DIR.iterdir() if f.suffix == ".py" and f.name != "__init__.py")


@pytest.fixture
def route_files() -> list[Path]:
    files = get_all_route_files()
    assert files, "No route files found to test"
    return files


def _parse(route_file: Path) -> ast.Module:
    return ast.parse(route_file.read_text())


class TestForbiddenImports:
    def test_imports_are_allowed(self, route_files: list[Path]):
        for route_file in route_files:
            for node in ast.walk(_parse(route_file)):
                if isinstance(node, ast.Import):
                    names = [alias.name for alias in node.names]
                elif isinstance(node, ast.ImportFrom) and node.module:
                    names = [node.module]
                else:
                    continue
                for name in names:
                    assert name.startswith(ALLOWED_MODULE_PREFIXES), (
                        f"{route_file.name}: forbidden import '{name}'"
                    )

    def test_only_session_from_sqlalchemy(self, route_files: list[Path]):
        for route_file in route_files:
            for node in ast.walk(_parse(route_file)):
                if isinstance(node, ast.ImportFrom) and node.module == "sqlalchemy.orm":
                    assert [alias.name for alias in node.names] == ["Session"], route_file.name

    def test_no_raw_db_operations(self, route_files: list[Path]):
        for route_file in route_files:
            for node in ast.walk(_parse(route_file)):
                if (
                    isinstance(node, ast.Call)
                    and isinstance(node.func, ast.Attribute)
                    and node.func.attr in ("execute", "scalar", "query", "add", "commit")
                    and isinstance(node.func.value, ast.Name)
                    and node.func.value.id in ("db", "session")
                ):
                    call = f"{node.func.value.id}.{node.func.attr}()"
                    pytest.fail(f"{route_file.name}: raw DB call '{call}'")


class TestRouteFileStructure:
    def test_all_routes_have_router(self, route_files: list[Path]):
        for route_file in route_files:
            targets = [
                target.id
                for node in ast.walk(_parse(route_file))
                if isinstance(node, ast.Assign)
                for target in node.targets
                if isinstance(target, ast.Name)
            ]
            assert "router" in targets, f"{route_file.name} must define a 'router' object"

    def test_route_handlers_return_dict(self, route_files: list[Path]):
        for route_file in route_files:
            for node in ast.walk(_parse(route_file)):
                if not isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                    continue
                is_route_handler = any(
                    isinstance(d, ast.Call)
                    and isinstance(d.func, ast.Attribute)
                    and isinstance(d.func.value, ast.Name)
                    and d.func.value.id == "router"
                    for d in node.decorator_list
                )
                if is_route_handler:
                    assert isinstance(node.returns, ast.Name) and node.returns.id == "dict", (
                        f"{route_file.name}:{node.name} should return dict"
                    )
