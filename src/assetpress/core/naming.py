"""Derived asset names and the relation key linking an original to its compressed copy."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from hashlib import md5

from assetpress.core.cache import serialize
from assetpress.core.options import FilenameFunction, PathData

_PLACEHOLDER = re.compile(r"\[(\\*)([\w:]+)(\\*)\]")
_RESOURCE = re.compile(r"^(?P<path>[^?#]*)(?P<query>\?[^#]*)?(?P<fragment>#.*)?$", re.DOTALL)
_CONTENT_STABLE = re.compile(r"\[(name|base|file)\]")


@dataclass(frozen=True, slots=True)
class StaticTemplate:
    template: str

    def resolve(self, name: str) -> str:
        return interpolate(self.template, name)


@dataclass(frozen=True, slots=True)
class DynamicTemplate:
    function: FilenameFunction

    def resolve(self, name: str) -> str:
        return interpolate(self.function(PathData(filename=name)), name)


FilenameTemplate = StaticTemplate | DynamicTemplate


def as_template(filename: str | FilenameFunction) -> FilenameTemplate:
    if isinstance(filename, str):
        return StaticTemplate(filename)
    return DynamicTemplate(filename)


def path_parts(filename: str) -> dict[str, str]:
    """Split ``filename`` into the values available to placeholders."""

    match = _RESOURCE.match(filename)
    if match is None:  # pragma: no cover - the pattern accepts any string
        raise ValueError(f"Cannot parse asset name {filename!r}")
    file = match.group("path")
    base = posixpath.basename(file)
    ext = posixpath.splitext(base)[1]
    return {
        "file": file,
        "query": match.group("query") or "",
        "fragment": match.group("fragment") or "",
        "path": file[: len(file) - len(base)],
        "base": base,
        "name": base[: len(base) - len(ext)],
        "ext": ext,
    }


def interpolate(template: str, filename: str) -> str:
    """Replace ``[file]``, ``[path]``, ``[base]``, ``[name]``, ``[ext]``, ``[query]`` and
    ``[fragment]`` in ``template`` with parts of ``filename``.

    ``[\\name\\]`` escapes a placeholder; unknown placeholders are left untouched.
    """

    parts = path_parts(filename)

    def _replace(match: re.Match[str]) -> str:
        kind = match.group(2)
        if match.group(1) or match.group(3):
            return f"[{kind}]"
        return parts.get(kind, match.group(0))

    return _PLACEHOLDER.sub(_replace, template)


def render_filename(filename: str | FilenameFunction | FilenameTemplate, name: str) -> str:
    """Name of the compressed asset derived from ``name``."""

    template = filename if isinstance(filename, (StaticTemplate, DynamicTemplate)) else as_template(filename)
    return template.resolve(name)


def is_content_stable(filename: str | FilenameFunction | FilenameTemplate) -> bool:
    """True when the derived name is built from the original's name.

    Only a static template can be inspected; a function is never trusted.
    """

    if isinstance(filename, StaticTemplate):
        filename = filename.template
    return isinstance(filename, str) and _CONTENT_STABLE.search(filename) is not None


def relation_name(algorithm: object, filename: str | FilenameFunction) -> str:
    """Relation key stored on the original asset, e.g. ``gzipped`` or ``brotliCompressed``.

    The key doubles as the "already processed" marker, so it must be the same for the same options
    on every run. For a custom algorithm with a filename function it is an md5 of the function's
    serialized form; two different functions serializing identically would share a key.
    """

    if isinstance(algorithm, str):
        if algorithm == "gzip":
            return "gzipped"
        return f"{algorithm}ed"

    if not isinstance(filename, str):
        digest = md5(serialize(filename).encode("utf-8"), usedforsecurity=False).hexdigest()
        return f"compression-function-{digest}"

    template = filename.split("?", 1)[0]
    return f"{posixpath.splitext(template)[1][1:]}ed"
