"""
Application package initializer.

The project is organised by layer: ``core`` holds configuration,
storage, tokens and errors; ``services`` holds the booking, review,
catalog and account logic; ``schemas`` holds the pydantic request and
response models; and ``api/v1/endpoints`` exposes one router per
domain.  Routers are aggregated in ``api/v1/router.py`` and mounted by
``main.create_app``.
"""

from .main import app  # noqa: F401
