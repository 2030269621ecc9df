"""Pluggable dependency signal providers.

Real vulnerability lookups and version diffing live outside the pipeline. A
provider is called with the parsed manifest and returns plain signals; the
default provider knows nothing.
"""
from dataclasses import dataclass, field
from typing import List, Mapping, Protocol, Sequence

from core.version_utils import major_version
from detectors.manifests import ParsedManifest
from models.finding import Finding


class DependencySignalProvider(Protocol):
    def outdated(self, manifest: ParsedManifest) -> Sequence[str]:
        ...

    def vulnerable(self, manifest: ParsedManifest) -> Sequence[Finding]:
        ...


class NullSignalProvider:
    """Reports nothing outdated and nothing vulnerable."""

    def outdated(self, manifest: ParsedManifest) -> Sequence[str]:
        return ()

    def vulnerable(self, manifest: ParsedManifest) -> Sequence[Finding]:
        return ()


@dataclass(frozen=True)
class MinimumMajorProvider:
    """Flags dependencies whose declared major version is below a configured floor.

    Example: ``MinimumMajorProvider({"react": 17, "django": 4})``
    """
    floors: Mapping[str, int] = field(default_factory=dict)

    def outdated(self, manifest: ParsedManifest) -> Sequence[str]:
        flagged: List[str] = []
        for _scope, deps in manifest.scopes:
            for name, spec in deps.items():
                floor = self.floors.get(name)
                major = major_version(spec)
                if floor is not None and major is not None and major < floor:
                    flagged.append(name)
        return tuple(sorted(set(flagged)))

    def vulnerable(self, manifest: ParsedManifest) -> Sequence[Finding]:
        return ()


@dataclass(frozen=True)
class Providers:
    dependency_signals: DependencySignalProvider = field(default_factory=NullSignalProvider)
