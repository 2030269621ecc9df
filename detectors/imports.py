"""Import statements in JavaScript/TypeScript and Python sources."""
import logging
from typing import List, Optional

from detectors.lines import REGEX_TIMEOUT_SECONDS, compile_pattern

logger = logging.getLogger(__name__)

IMPORT_PATTERNS = (
    r"""^\s*import\s+.*?\s+from\s+['"]([^'"]+)['"]""",
    r"""\brequire\s*\(\s*['"]([^'"]+)['"]\s*\)""",
    r"^\s*from\s+([\w.]+)\s+import\b",
    r"^\s*import\s+([\w.]+)\s*$",
)

# Side-effect imports, re-exports and dynamic imports also count as usage
USAGE_PATTERNS = IMPORT_PATTERNS + (
    r"""^\s*import\s+['"]([^'"]+)['"]""",
    r"""^\s*export\s+.*?\s+from\s+['"]([^'"]+)['"]""",
    r"""\bimport\s*\(\s*['"]([^'"]+)['"]\s*\)""",
)


def imported_modules(content: str, patterns=IMPORT_PATTERNS) -> List[str]:
    modules: List[str] = []
    for pattern in patterns:
        compiled = compile_pattern(pattern, multiline=True)
        if compiled is None:
            continue
        try:
            modules.extend(compiled.findall(content, timeout=REGEX_TIMEOUT_SECONDS))
        except TimeoutError:
            logger.warning(f"Import pattern timed out after {REGEX_TIMEOUT_SECONDS}s")
            continue
    return modules


def package_root(module: str) -> Optional[str]:
    """Installable package an import names.

    Examples:
        - "lodash/fp" -> "lodash"
        - "@scope/pkg/sub" -> "@scope/pkg"
        - "django.db.models" -> "django"
        - "./local", "node:fs" -> None
    """
    if not module or module.startswith((".", "/", "node:", "~")):
        return None
    if module.startswith("@"):
        parts = module.split("/")
        return "/".join(parts[:2]) if len(parts) >= 2 else None
    return module.split("/")[0].split(".")[0] or None


def normalize_package(name: str) -> str:
    """Case- and separator-insensitive form so "PyYAML_x" and "pyyaml-x" compare equal."""
    return name.lower().replace("_", "-")
