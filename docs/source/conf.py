import os
import sys

sys.path.insert(0, os.path.abspath("../../src"))

project = "Unireq"
copyright = "2026, Unireq contributors"
author = "Unireq contributors"
import unireq

release = unireq.__version__

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "sphinx.ext.viewcode",
    "sphinx.ext.intersphinx",
    "myst_parser",
]

exclude_patterns = []

myst_heading_anchors = 3
myst_enable_extensions = ["colon_fence"]

intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
}

# Re-exports from unireq/__init__ produce duplicate targets
suppress_warnings = ["ref.python"]

autodoc_default_options = {
    "show-inheritance": True,
}
autodoc_class_content = "both"
autodoc_member_order = "bysource"

html_theme = "furo"
html_title = "Unireq"
