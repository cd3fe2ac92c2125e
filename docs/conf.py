# SPDX-License-Identifier: MPL-2.0
# Configuration file for the Sphinx documentation builder.
from datetime import datetime

# Project information
project = "authsign"
copyright = f"{datetime.now().year}, The authsign Authors"  # noqa: A001
author = "The authsign Authors"

# General configuration
extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "sphinx.ext.viewcode",
    "sphinx_rtd_theme",
]

templates_path = ["_templates"]
exclude_patterns = ["_build", "Thumbs.db", ".DS_Store"]

# Autodoc runs on any platform; the PowerShell services are only imported.
autodoc_member_order = "bysource"

# HTML output options
html_theme = "sphinx_rtd_theme"
html_theme_options = {
    "navigation_depth": 3,
    "collapse_navigation": False,
}
