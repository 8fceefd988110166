"""Repository classifier: static inspection of a working tree.

Produces a :class:`RepoProfile` from manifest files only; nothing is
executed.  Detection order matters: a Node repository with a front-end
framework is ``frontend`` even if it also ships a Dockerfile.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog

from eco_pipeline.domain.entities.repo_profile import RepoProfile
from eco_pipeline.domain.value_objects.pipeline import StackType

logger = structlog.get_logger(__name__)

FRONTEND_FRAMEWORKS: dict[str, str] = {
    "react": "react",
    "next": "next",
    "vue": "vue",
    "nuxt": "nuxt",
    "@angular/core": "angular",
    "svelte": "svelte",
    "@sveltejs/kit": "sveltekit",
    "vite": "vite",
    "gatsby": "gatsby",
    "astro": "astro",
}

NODE_FRAMEWORKS: dict[str, str] = {
    "express": "express",
    "fastify": "fastify",
    "@nestjs/core": "nestjs",
    "koa": "koa",
}

PYTHON_FRAMEWORKS: tuple[str, ...] = ("django", "flask", "fastapi", "starlette")

_MONOREPO_MARKERS: tuple[str, ...] = (
    "pnpm-workspace.yaml",
    "lerna.json",
    "nx.json",
    "turbo.json",
    "rush.json",
)


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("manifest_unreadable", path=str(path), error=str(exc))
        return {}
    return data if isinstance(data, dict) else {}


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return ""


class RepoClassifier:
    """Classifies a repository working tree."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    def classify(self) -> RepoProfile:
        """Inspect the tree and return its profile."""
        root = self._root
        package_json = root / "package.json"

        if package_json.is_file():
            profile = self._classify_node(_read_json(package_json))
        elif self._is_python():
            profile = self._classify_python()
        elif any(root.glob("*.csproj")) or any(root.glob("*.sln")):
            profile = RepoProfile(
                stack=StackType.DOTNET,
                has_build=True,
                has_test=any(root.glob("*Tests*")) or (root / "tests").is_dir(),
                frameworks=("dotnet",),
                is_monorepo=self._is_monorepo(),
            )
        elif (root / "go.mod").is_file():
            profile = RepoProfile(
                stack=StackType.GO,
                has_lint=(root / ".golangci.yml").is_file() or (root / ".golangci.yaml").is_file(),
                has_build=True,
                has_test=any(root.rglob("*_test.go")),
                frameworks=("go",),
                is_monorepo=self._is_monorepo(),
            )
        elif (root / "pom.xml").is_file() or (root / "build.gradle").is_file() or (root / "build.gradle.kts").is_file():
            maven = (root / "pom.xml").is_file()
            profile = RepoProfile(
                stack=StackType.JAVA,
                has_build=True,
                has_test=(root / "src" / "test").is_dir(),
                frameworks=("maven",) if maven else ("gradle",),
                is_monorepo=self._is_monorepo(),
            )
        elif (root / "Dockerfile").is_file():
            profile = RepoProfile(stack=StackType.CONTAINER, has_build=True, frameworks=("docker",))
        else:
            profile = RepoProfile(stack=StackType.UNKNOWN, is_monorepo=self._is_monorepo())

        logger.info("repo_classified", root=str(root), **profile.summary())
        return profile

    # -- stacks -------------------------------------------------------------

    def _classify_node(self, manifest: dict[str, Any]) -> RepoProfile:
        deps: dict[str, Any] = {
            **(manifest.get("dependencies") or {}),
            **(manifest.get("devDependencies") or {}),
        }
        scripts: dict[str, Any] = manifest.get("scripts") or {}

        frontend = [label for dep, label in FRONTEND_FRAMEWORKS.items() if dep in deps]
        backend = [label for dep, label in NODE_FRAMEWORKS.items() if dep in deps]
        if "typescript" in deps:
            backend.append("typescript")

        return RepoProfile(
            stack=StackType.FRONTEND if frontend else StackType.NODE,
            has_lint="lint" in scripts,
            has_typecheck="typecheck" in scripts or "type-check" in scripts,
            has_test="test" in scripts and "no test specified" not in str(scripts.get("test")),
            has_build="build" in scripts,
            frameworks=tuple(frontend + backend),
            is_monorepo=bool(manifest.get("workspaces")) or self._is_monorepo(),
        )

    def _is_python(self) -> bool:
        root = self._root
        return any(
            (root / name).is_file()
            for name in ("pyproject.toml", "setup.py", "setup.cfg", "requirements.txt")
        )

    def _classify_python(self) -> RepoProfile:
        root = self._root
        pyproject = _read_text(root / "pyproject.toml")
        requirements = _read_text(root / "requirements.txt")
        combined = (pyproject + "\n" + requirements).lower()

        frameworks = tuple(name for name in PYTHON_FRAMEWORKS if name in combined)
        return RepoProfile(
            stack=StackType.PYTHON,
            has_lint="ruff" in combined or "flake8" in combined or (root / ".flake8").is_file(),
            has_typecheck="mypy" in combined or (root / "mypy.ini").is_file(),
            has_test=(root / "tests").is_dir() or any(root.glob("test_*.py")),
            has_build="[build-system]" in pyproject or (root / "setup.py").is_file(),
            frameworks=frameworks,
            is_monorepo=self._is_monorepo(),
        )

    # -- helpers ------------------------------------------------------------

    def _is_monorepo(self) -> bool:
        root = self._root
        if any((root / marker).is_file() for marker in _MONOREPO_MARKERS):
            return True
        nested = [
            path
            for path in root.glob("*/package.json")
            if "node_modules" not in path.parts
        ]
        return len(nested) > 1


def classify_repository(root: Path) -> RepoProfile:
    """Convenience wrapper around :class:`RepoClassifier`."""
    return RepoClassifier(root).classify()
