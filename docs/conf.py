import os
import sys

sys.path.insert(0, os.path.abspath(".."))

# Configuration file for the Sphinx documentation builder.
#
# For the full list of built-in configuration values, see the documentation:
# https://www.sphinx-doc.org/en/master/usage/configuration.html

# -- Project information -----------------------------------------------------

project = "lanscan"
copyright = "2025, lanscan"
author = "lanscan"
release = "0.1"

# -- General configuration ---------------------------------------------------

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "sphinx_rtd_theme",
    "sphinx_multiversion",
]

exclude_patterns = [
    "_build",
    "Thumbs.db",
    ".DS_Store",
    "**/*_unittest.py",
    "lanscan/test/**",
]

# Document the public surface re-exported from lanscan/__init__.py; private
# name-mangled members and test doubles stay out of the docs.
autodoc_mock_imports = ["zeroconf", "psutil"]
autodoc_default_options = {
    "members": True,
    "undoc-members": False,
    "show-inheritance": True,
    "member-order": "bysource",
}
autodoc_typehints = "description"
autodoc_class_signature = "separated"
napoleon_google_docstring = True
napoleon_numpy_docstring = False

# -- Options for HTML output -------------------------------------------------

html_theme = "sphinx_rtd_theme"

# Sphinx-multiversion settings
smv_tag_whitelist = r"^v\d+\.\d+(\.\d+)?$"
smv_branch_whitelist = r"^(main|develop)$"
smv_latest_version = "main"
smv_remote_whitelist = r"^origin$"
smv_outputdir_format = "{ref.name}"
