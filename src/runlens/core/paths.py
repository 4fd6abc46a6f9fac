# src/runlens/core/paths.py
"""Source path redaction.

Element source paths are shown to anyone who can read the introspection
API, so absolute paths never leave the process. A path under a known root
becomes "<root>:<relative>"; anything else is reduced to its last two
segments.

Roots are held on a PathSanitizer instance built from configuration.
There is no module-level root cache.
"""

from __future__ import annotations

import os
import sysconfig
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from runlens.core.config import PathSettings

ELLIPSIS = "…"


@dataclass(frozen=True, slots=True)
class PathRoot:
    name: str
    path: str


def _normalize(path: str) -> str:
    return os.path.normpath(os.path.abspath(path))


def _is_inside(relative: str) -> bool:
    return not (relative == os.pardir or relative.startswith(os.pardir + os.sep) or os.path.isabs(relative))


class PathSanitizer:
    """Maps absolute paths to redacted root-relative labels.

    Roots are deduplicated by name (the last definition wins) and matched
    longest path first, so a nested root such as site-packages inside the
    workspace takes precedence over its parent.

    Example:
        sanitizer = PathSanitizer([PathRoot("workspace", "/repo")])
        sanitizer.sanitize("/repo/src/app.py")  # "workspace:src/app.py"
        sanitizer.sanitize("/etc/passwd")       # "…/etc/passwd"
    """

    def __init__(self, roots: Iterable[PathRoot]) -> None:
        by_name: dict[str, PathRoot] = {}
        for root in roots:
            by_name.pop(root.name, None)
            by_name[root.name] = PathRoot(root.name, _normalize(root.path))
        self._roots = tuple(sorted(by_name.values(), key=lambda r: len(r.path), reverse=True))

    @classmethod
    def default(
        cls,
        *,
        cwd: str | None = None,
        home: str | None = None,
        extra_roots: Iterable[PathRoot] = (),
        include_defaults: bool = True,
    ) -> PathSanitizer:
        """Build a sanitizer with the built-in roots plus operator roots.

        Args:
            cwd: Workspace directory (defaults to the process cwd)
            home: Home directory (defaults to the current user's home)
            extra_roots: Operator roots, applied after the built-ins
            include_defaults: Set False to use only extra_roots

        Returns:
            Configured sanitizer
        """
        roots: list[PathRoot] = []
        if include_defaults:
            roots.append(PathRoot("workspace", cwd or os.getcwd()))
            roots.append(PathRoot("site-packages", sysconfig.get_paths()["purelib"]))
            roots.append(PathRoot("home", home or str(Path.home())))
        roots.extend(extra_roots)
        return cls(roots)

    @classmethod
    def from_settings(cls, settings: PathSettings, *, cwd: str | None = None, home: str | None = None) -> PathSanitizer:
        return cls.default(
            cwd=cwd,
            home=home,
            extra_roots=(PathRoot(root.name, root.path) for root in settings.roots),
            include_defaults=settings.include_defaults,
        )

    @property
    def roots(self) -> tuple[PathRoot, ...]:
        """Roots in match order (longest path first)."""
        return self._roots

    def sanitize(self, path: object) -> str | None:
        """Redact an absolute path.

        Args:
            path: Path to redact; anything but a non-empty string yields None

        Returns:
            "<root>:<relative>", "<root>:." for a root itself, or
            "…/<parent>/<name>" when no root contains the path
        """
        if not isinstance(path, str) or not path:
            return None
        absolute = _normalize(path)
        for root in self._roots:
            if absolute == root.path:
                return f"{root.name}:."
            relative = os.path.relpath(absolute, root.path)
            if _is_inside(relative):
                return f"{root.name}:{relative.replace(os.sep, '/')}"
        segments = [segment for segment in absolute.split(os.sep) if segment]
        return f"{ELLIPSIS}/" + "/".join(segments[-2:])

    def resolve_label(self, label: str | None) -> str | None:
        """Map a "<root>:<relative>" label back to an absolute path.

        Returns None for elided paths and labels naming an unknown root.
        """
        if not label or ":" not in label:
            return None
        name, _, relative = label.partition(":")
        for root in self._roots:
            if root.name == name:
                if relative in ("", "."):
                    return root.path
                return _normalize(os.path.join(root.path, *relative.split("/")))
        return None
