"""Path classification helpers shared by the detectors and analyzers."""
import posixpath
from typing import Optional

from models.enums import ArtifactKind

MANIFEST_FILES = {
    "package.json",
    "requirements.txt",
    "pyproject.toml",
    "Pipfile",
    "Cargo.toml",
    "go.mod",
    "pom.xml",
    "build.gradle",
    "build.gradle.kts",
    "composer.json",
    "Gemfile",
    "Dockerfile",
}

VENDORED_DIRS = {
    "node_modules",
    "vendor",
    "dist",
    "build",
    "target",
    ".git",
    ".next",
    "__pycache__",
    ".venv",
    "venv",
    "coverage",
}

LANGUAGE_BY_EXTENSION = {
    ".js": "JavaScript",
    ".jsx": "JavaScript",
    ".mjs": "JavaScript",
    ".cjs": "JavaScript",
    ".ts": "TypeScript",
    ".tsx": "TypeScript",
    ".py": "Python",
    ".java": "Java",
    ".kt": "Kotlin",
    ".go": "Go",
    ".rs": "Rust",
    ".php": "PHP",
    ".rb": "Ruby",
    ".vue": "Vue",
    ".svelte": "Svelte",
    ".cs": "C#",
    ".swift": "Swift",
    ".c": "C",
    ".h": "C",
    ".cpp": "C++",
    ".scala": "Scala",
}

SOURCE_EXTENSIONS = frozenset(LANGUAGE_BY_EXTENSION) | {".html", ".sql"}

TEST_DIRS = {"test", "tests", "__tests__", "spec", "e2e"}
DOCS_DIRS = {"docs", "doc", "documentation"}
SOURCE_DIRS = {"src", "source", "lib", "app"}


def basename(path: str) -> str:
    return posixpath.basename(path.rstrip("/"))


def extension(path: str) -> str:
    return posixpath.splitext(path)[1].lower()


def is_manifest(path: str) -> bool:
    name = basename(path)
    if name in MANIFEST_FILES:
        return True
    return name.startswith("requirements") and name.endswith(".txt")


def is_readme(path: str) -> bool:
    return basename(path).lower().split(".")[0] == "readme"


def is_vendored(path: str) -> bool:
    return any(part in VENDORED_DIRS for part in path.split("/"))


def is_source(path: str) -> bool:
    if is_vendored(path):
        return False
    name = basename(path)
    if name.endswith(".min.js") or name.endswith(".d.ts"):
        return False
    return extension(path) in SOURCE_EXTENSIONS


def is_test_path(path: str) -> bool:
    parts = path.lower().split("/")
    if any(part in TEST_DIRS for part in parts[:-1]):
        return True
    name = parts[-1]
    return (
        ".test." in name
        or ".spec." in name
        or name.startswith("test_")
        or posixpath.splitext(name)[0].endswith("_test")
    )


def classify(path: str) -> ArtifactKind:
    if is_readme(path):
        return ArtifactKind.README
    if is_manifest(path):
        return ArtifactKind.MANIFEST
    if is_source(path):
        return ArtifactKind.SOURCE
    return ArtifactKind.OTHER


def language_of(path: str) -> Optional[str]:
    return LANGUAGE_BY_EXTENSION.get(extension(path))


def directory_purpose(path: str) -> str:
    """Guess what a directory is for from its name."""
    name = basename(path).lower()
    if name in SOURCE_DIRS:
        return "source-code"
    if name in TEST_DIRS:
        return "testing"
    if name in DOCS_DIRS:
        return "documentation"
    if name in ("components", "ui", "widgets"):
        return "ui-components"
    if name in ("utils", "util", "helpers", "helper", "common", "shared"):
        return "utilities"
    if name in ("config", "configs", "settings", ".github", "scripts"):
        return "configuration"
    if name in ("public", "static", "assets", "images", "styles"):
        return "assets"
    if name in ("api", "routes", "controllers", "handlers", "services"):
        return "api"
    if name in ("models", "entities", "schemas", "types"):
        return "data-models"
    if name in ("pages", "views", "screens", "layouts"):
        return "views"
    if name in VENDORED_DIRS:
        return "generated"
    return "other"
