# docs/source/conf.py
from __future__ import annotations
import sys
from pathlib import Path

# ──────────────────────────────────────────────────────────────────────────────
# Paths
# ──────────────────────────────────────────────────────────────────────────────
ROOT = Path(__file__).resolve().parents[2]          # repo root
sys.path.insert(0, str(ROOT))                       # import project without install

# ──────────────────────────────────────────────────────────────────────────────
# Project meta
# ──────────────────────────────────────────────────────────────────────────────
project   = "async_http"
author    = "Miskler"
copyright = "2025, Miskler"
from async_http import __version__
release   = __version__

# ──────────────────────────────────────────────────────────────────────────────
# Extensions
# ──────────────────────────────────────────────────────────────────────────────
extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.autosummary",
    "sphinx.ext.autodoc.typehints",
    "sphinx.ext.napoleon",
    "sphinx.ext.intersphinx",
    "sphinx.ext.viewcode",
    "autoapi.extension",
]

# ──────────────────────────────────────────────────────────────────────────────
# Theme / HTML
# ──────────────────────────────────────────────────────────────────────────────
html_theme       = "furo"
html_theme_options = {
    "source_branch": "main",
    "source_directory": "docs/",
}

# ──────────────────────────────────────────────────────────────────────────────
# Навигация и compact-style
# ──────────────────────────────────────────────────────────────────────────────
add_module_names                     = False        # get() → HTTPClient
toc_object_entries_show_parents      = "hide"       # короче TOC
python_use_unqualified_type_names    = True         # Header, а не async_http.abstraction.headers.Header
multi_line_parameter_list            = True         # каждый аргумент с новой строки
python_maximum_signature_line_length = 60           # длина, после которой рвём строку

# ──────────────────────────────────────────────────────────────────────────────
# Type-hints
# ──────────────────────────────────────────────────────────────────────────────
autodoc_typehints = "signature"      # str / Optional[...] остаются в сигнатуре
typehints_fqcn    = False            # короткие имена в хинтах

# ──────────────────────────────────────────────────────────────────────────────
# AutoAPI – строим flat API Reference
# ──────────────────────────────────────────────────────────────────────────────
autoapi_type              = "python"
autoapi_dirs              = [str(ROOT / "async_http")]
autoapi_root              = "reference/api"
autoapi_add_toctree_entry = True

autoapi_options = [
    "members",
    "undoc-members",
    "show-module-summary",
    "special-members",
    "imported-members",
]

# ──────────────────────────────────────────────────────────────────────────────
# Intersphinx – ссылки на stdlib / pydantic
# ──────────────────────────────────────────────────────────────────────────────
intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
    "pydantic": ("https://docs.pydantic.dev/latest", None),
}
