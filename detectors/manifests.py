"""
Total parsers for dependency manifests.

Every parser returns a ParsedManifest, or None when the content is malformed.
Nothing here raises on bad input: a broken manifest is logged and treated the
same as a missing one.
"""
import json
import logging
import re
import tomllib
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from detectors.paths import basename

logger = logging.getLogger(__name__)

PRODUCTION = "production"
DEVELOPMENT = "development"
OPTIONAL = "optional"

# RecursionError: json and ElementTree give up on deeply nested documents
_PARSE_ERRORS = (ValueError, TypeError, KeyError, AttributeError, RecursionError, ET.ParseError)


@dataclass(frozen=True)
class ParsedManifest:
    path: str
    ecosystem: str
    production: Mapping[str, str] = field(default_factory=dict)
    development: Mapping[str, str] = field(default_factory=dict)
    optional: Mapping[str, str] = field(default_factory=dict)
    scripts: Mapping[str, str] = field(default_factory=dict)
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        for name in ("production", "development", "optional", "scripts", "metadata"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    @property
    def scopes(self) -> Tuple[Tuple[str, Mapping[str, str]], ...]:
        return (
            (PRODUCTION, self.production),
            (DEVELOPMENT, self.development),
            (OPTIONAL, self.optional),
        )


def _str_map(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): v if isinstance(v, str) else json.dumps(v, sort_keys=True) for k, v in value.items()}


def _text(value: Any) -> Optional[str]:
    """Scalar metadata as a string; numbers are kept, containers are dropped."""
    if isinstance(value, str):
        return value or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _text_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [text for text in (_text(item) for item in value) if text]


def _engines(versions: Any) -> Dict[str, str]:
    if not isinstance(versions, dict):
        return {}
    return {str(name): text for name, text in ((n, _text(v)) for n, v in versions.items()) if text}


def _version_of(spec: Any) -> str:
    """Version from a TOML dependency value: "1.0", {version = "1.0"} or {git = ...}."""
    if isinstance(spec, str):
        return spec or "*"
    if isinstance(spec, dict):
        if "version" in spec:
            return str(spec["version"])
        for key in ("git", "path", "url"):
            if key in spec:
                return f"{key}:{spec[key]}"
    return "*"


# --- JavaScript -----------------------------------------------------------

def parse_package_json(path: str, content: str) -> ParsedManifest:
    data = json.loads(content)
    if not isinstance(data, dict):
        raise ValueError("package.json root is not an object")

    metadata = {
        "name": _text(data.get("name")),
        "version": _text(data.get("version")),
        "description": _text(data.get("description")),
        "keywords": _text_list(data.get("keywords")),
        "license": data.get("license") if isinstance(data.get("license"), str) else None,
        "repository": bool(data.get("repository")),
        "homepage": bool(data.get("homepage")),
        "author": bool(data.get("author")),
        "engines": _engines(data.get("engines")),
    }
    return ParsedManifest(
        path=path,
        ecosystem="npm",
        production=_str_map(data.get("dependencies")),
        development=_str_map(data.get("devDependencies")),
        optional=_str_map(data.get("optionalDependencies")),
        scripts=_str_map(data.get("scripts")),
        metadata=metadata,
    )


# --- Python ---------------------------------------------------------------

_REQUIREMENT_RE = re.compile(r"^([A-Za-z0-9][A-Za-z0-9._-]*)\s*(?:\[[^\]]*\])?\s*(.*)$")
_DEV_GROUPS = {"dev", "develop", "development", "test", "tests", "testing", "lint", "docs", "typing"}


def _parse_requirement(line: str) -> Optional[Tuple[str, str]]:
    line = line.split("#", 1)[0].strip()
    if not line or line.startswith("-"):
        return None
    match = _REQUIREMENT_RE.match(line)
    if not match:
        return None
    spec = match.group(2).split(";", 1)[0].strip()
    if spec.startswith("@"):
        spec = spec[1:].strip()
    return match.group(1), spec or "*"


def parse_requirements_txt(path: str, content: str) -> ParsedManifest:
    deps: Dict[str, str] = {}
    for line in content.splitlines():
        parsed = _parse_requirement(line)
        if parsed:
            deps[parsed[0]] = parsed[1]
    name = basename(path).lower()
    is_dev = any(marker in name for marker in ("dev", "test", "lint", "docs"))
    return ParsedManifest(
        path=path,
        ecosystem="pypi",
        production={} if is_dev else deps,
        development=deps if is_dev else {},
    )


def _requirements_from_list(items: Any) -> Dict[str, str]:
    deps: Dict[str, str] = {}
    for item in items or []:
        if isinstance(item, str):
            parsed = _parse_requirement(item)
            if parsed:
                deps[parsed[0]] = parsed[1]
    return deps


def parse_pyproject_toml(path: str, content: str) -> ParsedManifest:
    data = tomllib.loads(content)
    project = data.get("project") or {}
    poetry = (data.get("tool") or {}).get("poetry") or {}

    production = _requirements_from_list(project.get("dependencies"))
    development: Dict[str, str] = {}
    optional: Dict[str, str] = {}

    for group, items in (project.get("optional-dependencies") or {}).items():
        target = development if group.lower() in _DEV_GROUPS else optional
        target.update(_requirements_from_list(items))
    for items in (data.get("dependency-groups") or {}).values():
        development.update(_requirements_from_list(items))

    for name, spec in (poetry.get("dependencies") or {}).items():
        if name.lower() == "python":
            continue
        if isinstance(spec, dict) and spec.get("optional"):
            optional[name] = _version_of(spec)
        else:
            production[name] = _version_of(spec)
    for name, spec in (poetry.get("dev-dependencies") or {}).items():
        development[name] = _version_of(spec)
    for group in (poetry.get("group") or {}).values():
        for name, spec in (group.get("dependencies") or {}).items():
            development[name] = _version_of(spec)

    urls = project.get("urls") or {}
    license_value = project.get("license") or poetry.get("license")
    if isinstance(license_value, dict):
        license_value = license_value.get("text")
    requires_python = project.get("requires-python")
    metadata = {
        "name": _text(project.get("name") or poetry.get("name")),
        "version": _text(project.get("version") or poetry.get("version")),
        "description": _text(project.get("description") or poetry.get("description")),
        "keywords": _text_list(project.get("keywords") or poetry.get("keywords")),
        "license": license_value if isinstance(license_value, str) else None,
        "repository": bool(poetry.get("repository") or any("source" in k.lower() or "repo" in k.lower() for k in urls)),
        "homepage": bool(poetry.get("homepage") or any("home" in k.lower() for k in urls)),
        "author": bool(project.get("authors") or poetry.get("authors")),
        "engines": _engines({"python": requires_python}),
    }
    scripts = project.get("scripts") or poetry.get("scripts") or {}
    return ParsedManifest(
        path=path,
        ecosystem="pypi",
        production=production,
        development=development,
        optional=optional,
        scripts=_str_map(scripts),
        metadata=metadata,
    )


def parse_pipfile(path: str, content: str) -> ParsedManifest:
    data = tomllib.loads(content)
    production = {k: _version_of(v) for k, v in (data.get("packages") or {}).items()}
    development = {k: _version_of(v) for k, v in (data.get("dev-packages") or {}).items()}
    python_version = (data.get("requires") or {}).get("python_version")
    return ParsedManifest(
        path=path,
        ecosystem="pypi",
        production=production,
        development=development,
        scripts=_str_map(data.get("scripts")),
        metadata={"engines": _engines({"python": python_version})},
    )


# --- Rust -----------------------------------------------------------------

def parse_cargo_toml(path: str, content: str) -> ParsedManifest:
    data = tomllib.loads(content)
    production: Dict[str, str] = {}
    optional: Dict[str, str] = {}
    for name, spec in (data.get("dependencies") or {}).items():
        target = optional if isinstance(spec, dict) and spec.get("optional") else production
        target[name] = _version_of(spec)
    development = {k: _version_of(v) for k, v in (data.get("dev-dependencies") or {}).items()}
    development.update({k: _version_of(v) for k, v in (data.get("build-dependencies") or {}).items()})

    package = data.get("package") or {}
    metadata = {
        "name": _text(package.get("name")),
        "version": _text(package.get("version")),
        "description": _text(package.get("description")),
        "keywords": _text_list(package.get("keywords")),
        "license": _text(package.get("license")),
        "repository": bool(package.get("repository")),
        "homepage": bool(package.get("homepage")),
        "author": bool(package.get("authors")),
        "engines": _engines({"rust": package.get("rust-version")}),
    }
    return ParsedManifest(
        path=path,
        ecosystem="cargo",
        production=production,
        development=development,
        optional=optional,
        metadata=metadata,
    )


# --- Go -------------------------------------------------------------------

_GO_REQUIRE_LINE = re.compile(r"^\s*([^\s()]+)\s+(v[^\s]+)(\s*//\s*indirect)?")


def parse_go_mod(path: str, content: str) -> ParsedManifest:
    production: Dict[str, str] = {}
    module_name = None
    go_version = None
    in_block = False
    for raw in content.splitlines():
        line = raw.strip()
        if line.startswith("module "):
            module_name = line.split(None, 1)[1].strip()
        elif line.startswith("go ") and go_version is None:
            go_version = line.split(None, 1)[1].strip()
        elif line.startswith("require ("):
            in_block = True
        elif in_block and line.startswith(")"):
            in_block = False
        elif in_block or line.startswith("require "):
            match = _GO_REQUIRE_LINE.match(line[len("require "):] if line.startswith("require ") else line)
            if match and not match.group(3):
                production[match.group(1)] = match.group(2)
    if module_name is None and not production:
        raise ValueError("go.mod has no module directive")
    return ParsedManifest(
        path=path,
        ecosystem="go",
        production=production,
        metadata={"name": module_name, "engines": {"go": go_version} if go_version else {}},
    )


# --- JVM ------------------------------------------------------------------

def _strip_ns(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child_text(element: ET.Element, name: str) -> Optional[str]:
    for child in element:
        if _strip_ns(child.tag) == name:
            return (child.text or "").strip() or None
    return None


def parse_pom_xml(path: str, content: str) -> ParsedManifest:
    root = ET.fromstring(content)
    if _strip_ns(root.tag) != "project":
        raise ValueError("pom.xml root is not <project>")

    production: Dict[str, str] = {}
    development: Dict[str, str] = {}
    optional: Dict[str, str] = {}
    for section in root:
        if _strip_ns(section.tag) != "dependencies":
            continue
        for dep in section:
            group = _child_text(dep, "groupId")
            artifact = _child_text(dep, "artifactId")
            if not group or not artifact:
                continue
            name = f"{group}:{artifact}"
            version = _child_text(dep, "version") or "*"
            scope = _child_text(dep, "scope")
            if _child_text(dep, "optional") == "true":
                optional[name] = version
            elif scope == "test":
                development[name] = version
            else:
                production[name] = version

    license_name = None
    for section in root:
        if _strip_ns(section.tag) == "licenses":
            for lic in section:
                license_name = _child_text(lic, "name")
                break
    metadata = {
        "name": _child_text(root, "artifactId"),
        "version": _child_text(root, "version"),
        "description": _child_text(root, "description"),
        "license": license_name,
        "homepage": bool(_child_text(root, "url")),
        "repository": any(_strip_ns(c.tag) == "scm" for c in root),
        "engines": {},
    }
    return ParsedManifest(
        path=path,
        ecosystem="maven",
        production=production,
        development=development,
        optional=optional,
        metadata=metadata,
    )


_GRADLE_DEP = re.compile(
    r"""^\s*(\w+)\s*\(?\s*['"]([^:'"\s]+):([^:'"\s]+)(?::([^'"\s]+))?['"]""",
    re.MULTILINE,
)
_GRADLE_PRODUCTION = {"implementation", "api", "compile", "compileOnly", "runtimeOnly", "kapt", "annotationProcessor"}


def parse_build_gradle(path: str, content: str) -> ParsedManifest:
    production: Dict[str, str] = {}
    development: Dict[str, str] = {}
    for configuration, group, artifact, version in _GRADLE_DEP.findall(content):
        name = f"{group}:{artifact}"
        if configuration.lower().startswith(("test", "androidtest")):
            development[name] = version or "*"
        elif configuration in _GRADLE_PRODUCTION:
            production[name] = version or "*"
    return ParsedManifest(path=path, ecosystem="gradle", production=production, development=development)


# --- PHP ------------------------------------------------------------------

def parse_composer_json(path: str, content: str) -> ParsedManifest:
    data = json.loads(content)
    if not isinstance(data, dict):
        raise ValueError("composer.json root is not an object")

    def packages(key: str) -> Dict[str, str]:
        return {
            name: version
            for name, version in _str_map(data.get(key)).items()
            if name != "php" and not name.startswith("ext-")
        }

    scripts = {}
    for name, command in (data.get("scripts") or {}).items():
        scripts[name] = " && ".join(command) if isinstance(command, list) else str(command)
    metadata = {
        "name": _text(data.get("name")),
        "version": _text(data.get("version")),
        "description": _text(data.get("description")),
        "keywords": _text_list(data.get("keywords")),
        "license": data.get("license") if isinstance(data.get("license"), str) else None,
        "homepage": bool(data.get("homepage")),
        "repository": bool((data.get("support") or {}).get("source")),
        "author": bool(data.get("authors")),
        "engines": _engines({"php": (data.get("require") or {}).get("php")}),
    }
    return ParsedManifest(
        path=path,
        ecosystem="composer",
        production=packages("require"),
        development=packages("require-dev"),
        scripts=scripts,
        metadata=metadata,
    )


# --- Ruby -----------------------------------------------------------------

_GEM_LINE = re.compile(r"""^\s*gem\s+['"]([^'"]+)['"](?:\s*,\s*['"]([^'"]+)['"])?""")
_GROUP_LINE = re.compile(r"^\s*group\s+(.+?)\s+do\s*$")


def parse_gemfile(path: str, content: str) -> ParsedManifest:
    production: Dict[str, str] = {}
    development: Dict[str, str] = {}
    in_dev_group = False
    depth = 0
    ruby_version = None
    for line in content.splitlines():
        group = _GROUP_LINE.match(line)
        if group:
            depth += 1
            in_dev_group = any(g in group.group(1) for g in (":development", ":test"))
            continue
        if depth and line.strip() == "end":
            depth -= 1
            in_dev_group = in_dev_group and depth > 0
            continue
        ruby = re.match(r"""^\s*ruby\s+['"]([^'"]+)['"]""", line)
        if ruby:
            ruby_version = ruby.group(1)
            continue
        gem = _GEM_LINE.match(line)
        if gem:
            target = development if in_dev_group or "group: :test" in line or "group: :development" in line else production
            target[gem.group(1)] = gem.group(2) or "*"
    return ParsedManifest(
        path=path,
        ecosystem="rubygems",
        production=production,
        development=development,
        metadata={"engines": _engines({"ruby": ruby_version})},
    )


PARSERS: Dict[str, Callable[[str, str], ParsedManifest]] = {
    "package.json": parse_package_json,
    "requirements.txt": parse_requirements_txt,
    "pyproject.toml": parse_pyproject_toml,
    "Pipfile": parse_pipfile,
    "Cargo.toml": parse_cargo_toml,
    "go.mod": parse_go_mod,
    "pom.xml": parse_pom_xml,
    "build.gradle": parse_build_gradle,
    "build.gradle.kts": parse_build_gradle,
    "composer.json": parse_composer_json,
    "Gemfile": parse_gemfile,
}


def parser_for(path: str) -> Optional[Callable[[str, str], ParsedManifest]]:
    name = basename(path)
    if name.startswith("requirements") and name.endswith(".txt"):
        return parse_requirements_txt
    return PARSERS.get(name)


def parse_manifest(path: str, content: Optional[str]) -> Optional[ParsedManifest]:
    """Parse any supported manifest. Returns None when absent, unsupported or malformed."""
    if content is None:
        return None
    parser = parser_for(path)
    if parser is None:
        return None
    try:
        return parser(path, content)
    except _PARSE_ERRORS as e:
        logger.warning(f"Malformed manifest {path}: {e}")
        return None
