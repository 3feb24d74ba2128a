"""
Top‑level package for the HelpApp booking marketplace API.

This file makes ``helpapp_api`` a Python package so that modules
within ``app`` can be imported using fully qualified names like
``helpapp_api.app.main``.

The package provides no public exports; all functionality lives in
submodules under ``app``.
"""

__all__ = []
