"""Tests for raw import/export extraction."""

import pytest

from docgraph.extractors import (
    JavaScriptExtractor,
    PythonExtractor,
    default_registry,
    is_source_extension,
)


class TestJavaScriptExtractor:
    """Tests for the JS/TS regex extractor."""

    def test_es6_imports(self):
        """Default, named, namespace and side-effect imports are found."""
        content = (
            "import React from 'react';\n"
            "import { a, b } from \"./utils\";\n"
            "import * as api from '../api/client';\n"
            "import './styles.css';\n"
            "import type { Props } from './types';\n"
        )
        assert JavaScriptExtractor().extract_imports(content) == [
            "react", "./utils", "../api/client", "./styles.css", "./types",
        ]

    def test_require_dynamic_and_reexport(self):
        """CommonJS, dynamic import() and re-exports count as imports."""
        content = (
            "const fs = require('fs');\n"
            "const cfg = require( './config' );\n"
            "const Page = import('./pages/home');\n"
            "export * from './models';\n"
            "export { helper } from './helpers';\n"
        )
        imports = JavaScriptExtractor().extract_imports(content)
        assert set(imports) == {"fs", "./config", "./pages/home", "./models", "./helpers"}

    def test_duplicates_removed(self):
        content = "import x from './x';\nconst y = require('./x');\n"
        assert JavaScriptExtractor().extract_imports(content) == ["./x"]

    def test_exports(self):
        """Named declarations are exported; bare expressions are not."""
        content = (
            "export const PORT = 3000;\n"
            "export default function App() {}\n"
            "export async function load() {}\n"
            "export class Store {}\n"
            "export default 42;\n"
        )
        assert JavaScriptExtractor().extract_exports(content) == ["PORT", "App", "load", "Store"]


class TestPythonExtractor:
    """Tests for the Python import extractor."""

    def test_absolute_imports_kept(self):
        content = "import os, sys\nfrom collections import OrderedDict\nimport xml.etree\n"
        assert PythonExtractor().extract_imports(content) == ["os", "sys", "collections", "xml.etree"]

    def test_relative_imports_become_paths(self):
        """Leading dots are rewritten into ./ and ../ path form."""
        content = (
            "from .models import Item\n"
            "from ..core.storage import Store\n"
            "from ...shared import tools\n"
        )
        assert PythonExtractor().extract_imports(content) == [
            "./models", "../core/storage", "../../shared",
        ]

    def test_from_dot_import_names(self):
        """``from . import a, b`` yields one path per name."""
        content = "from . import utils, models as m\nfrom .. import (config)\n"
        assert PythonExtractor().extract_imports(content) == ["./utils", "./models", "../config"]

    def test_exports_skip_private_names(self):
        content = (
            "class Item:\n"
            "    def method(self):\n"
            "        pass\n"
            "def public():\n"
            "    pass\n"
            "async def fetch():\n"
            "    pass\n"
            "def _hidden():\n"
            "    pass\n"
        )
        assert PythonExtractor().extract_exports(content) == ["Item", "public", "fetch"]


class TestRegistry:
    """Tests for extension-keyed dispatch."""

    @pytest.mark.parametrize("ext", [".js", ".JSX", ".ts", ".tsx", ".py"])
    def test_known_extensions(self, ext):
        assert default_registry().for_extension(ext) is not None

    def test_unknown_extension_yields_nothing(self):
        assert default_registry().extract("import x from './x'", ".md") == ([], [])

    def test_empty_content(self):
        assert default_registry().extract("", ".js") == ([], [])

    def test_extract_returns_imports_and_exports(self):
        imports, exports = default_registry().extract("from .a import b\ndef run():\n    pass\n", ".py")
        assert imports == ["./a"]
        assert exports == ["run"]

    def test_source_extension(self):
        assert is_source_extension(".py")
        assert is_source_extension(".TS")
        assert not is_source_extension(".json")
        assert not is_source_extension(".md")
