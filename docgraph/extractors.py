"""Raw import/export extraction, one strategy per language family.

Extraction is deliberately heuristic: it runs regular expressions over the
first bytes of a file and returns the raw identifier strings it finds.
Turning those strings into file paths is the job of
:mod:`docgraph.import_graph`, so both halves can be tested independently.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Set, Tuple

# ---------------------------------------------------------------------------
# Extension <-> language mapping
# ---------------------------------------------------------------------------
LANGUAGE_MAP: Dict[str, str] = {
    ".js": "JavaScript",
    ".jsx": "React",
    ".mjs": "JavaScript",
    ".cjs": "JavaScript",
    ".ts": "TypeScript",
    ".tsx": "React + TypeScript",
    ".py": "Python",
    ".java": "Java",
    ".go": "Go",
    ".rs": "Rust",
    ".rb": "Ruby",
    ".php": "PHP",
    ".swift": "Swift",
    ".kt": "Kotlin",
    ".cs": "C#",
    ".cpp": "C++",
    ".c": "C",
    ".vue": "Vue.js",
    ".svelte": "Svelte",
}

SOURCE_EXTENSIONS: Set[str] = set(LANGUAGE_MAP)


def is_source_extension(ext: str) -> bool:
    return ext.lower() in SOURCE_EXTENSIONS


def _dedupe(items: Iterable[str]) -> List[str]:
    seen: Set[str] = set()
    out: List[str] = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            out.append(item)
    return out


# ===================================================================
# Strategy interface
# ===================================================================

class ImportExtractor(ABC):
    """Pulls raw import and export identifiers out of file content."""

    extensions: Tuple[str, ...] = ()

    @abstractmethod
    def extract_imports(self, content: str) -> List[str]:
        ...

    @abstractmethod
    def extract_exports(self, content: str) -> List[str]:
        ...


# ===================================================================
# JavaScript / TypeScript family
# ===================================================================

_ES6_IMPORT_RE = re.compile(r"""import\s+(?:[\w\s{},*$]+\s+from\s+)?['"]([^'"]+)['"]""")
_REEXPORT_RE = re.compile(r"""export\s+(?:\*|\{[^}]*\})\s*(?:as\s+\w+\s+)?from\s+['"]([^'"]+)['"]""")
_DYNAMIC_IMPORT_RE = re.compile(r"""import\s*\(\s*['"]([^'"]+)['"]\s*\)""")
_REQUIRE_RE = re.compile(r"""require\s*\(\s*['"]([^'"]+)['"]\s*\)""")
_JS_EXPORT_RE = re.compile(
    r"export\s+(?:default\s+)?(?:async\s+)?(?:const|let|var|function\*?|class)\s+([\w$]+)"
)


class JavaScriptExtractor(ImportExtractor):
    """ES modules, re-exports, dynamic ``import()`` and CommonJS ``require``."""

    extensions = (".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx", ".vue", ".svelte")

    def extract_imports(self, content: str) -> List[str]:
        found: List[str] = []
        for pattern in (_ES6_IMPORT_RE, _REEXPORT_RE, _DYNAMIC_IMPORT_RE, _REQUIRE_RE):
            found.extend(m.group(1) for m in pattern.finditer(content))
        return _dedupe(found)

    def extract_exports(self, content: str) -> List[str]:
        return _dedupe(m.group(1) for m in _JS_EXPORT_RE.finditer(content))


# ===================================================================
# Python
# ===================================================================

_PY_FROM_RE = re.compile(r"^[ \t]*from[ \t]+(\.*[\w.]*)[ \t]+import[ \t]+\(?([\w \t,*]*)", re.MULTILINE)
_PY_IMPORT_RE = re.compile(r"^[ \t]*import[ \t]+([\w.]+(?:[ \t]*,[ \t]*[\w.]+)*)", re.MULTILINE)
_PY_EXPORT_RE = re.compile(r"^(?:async[ \t]+)?def[ \t]+(\w+)|^class[ \t]+(\w+)", re.MULTILINE)


def _relative_module_to_path(module: str) -> str:
    """Rewrite a relative dotted module (``..core.models``) as ``../core/models``."""
    stripped = module.lstrip(".")
    depth = len(module) - len(stripped)
    prefix = "./" if depth == 1 else "../" * (depth - 1)
    return prefix + stripped.replace(".", "/")


class PythonExtractor(ImportExtractor):
    """``import x`` and ``from x import y`` statements.

    Relative imports are rewritten into path form so they go through the
    same relative-path resolution as JavaScript specifiers. ``from . import a``
    yields one path per imported name.
    """

    extensions = (".py",)

    def extract_imports(self, content: str) -> List[str]:
        found: List[Tuple[int, str]] = []
        for match in _PY_FROM_RE.finditer(content):
            module, names = match.group(1), match.group(2)
            if not module.startswith("."):
                found.append((match.start(), module))
            elif module.strip("."):
                found.append((match.start(), _relative_module_to_path(module)))
            else:
                base = _relative_module_to_path(module)
                for name in names.replace("(", "").split(","):
                    name = name.strip().split(" ")[0]
                    if name and name != "*":
                        found.append((match.start(), base + name))
        for match in _PY_IMPORT_RE.finditer(content):
            for name in match.group(1).split(","):
                found.append((match.start(), name.strip()))
        found.sort(key=lambda item: item[0])
        return _dedupe(name for _, name in found)

    def extract_exports(self, content: str) -> List[str]:
        names = (m.group(1) or m.group(2) for m in _PY_EXPORT_RE.finditer(content))
        return _dedupe(n for n in names if not n.startswith("_"))


# ===================================================================
# Registry
# ===================================================================

class ExtractorRegistry:
    """Maps file extensions to extraction strategies."""

    def __init__(self, extractors: Optional[Iterable[ImportExtractor]] = None) -> None:
        self._by_ext: Dict[str, ImportExtractor] = {}
        for extractor in extractors or ():
            self.register(extractor)

    def register(self, extractor: ImportExtractor) -> None:
        for ext in extractor.extensions:
            self._by_ext[ext.lower()] = extractor

    def for_extension(self, ext: str) -> Optional[ImportExtractor]:
        return self._by_ext.get(ext.lower())

    def extract(self, content: str, ext: str) -> Tuple[List[str], List[str]]:
        """Return ``(imports, exports)``; unknown extensions yield empty lists."""
        extractor = self.for_extension(ext)
        if extractor is None or not content:
            return [], []
        return extractor.extract_imports(content), extractor.extract_exports(content)


def default_registry() -> ExtractorRegistry:
    return ExtractorRegistry([JavaScriptExtractor(), PythonExtractor()])
