"""Quapp project creation (``create-quapp``).

Fetches a starter template, renames the package, and optionally sets up git
and dependencies.

Quick usage::

    from quapp.cancellation import CancelToken
    from quapp.create import CreateSession, Prompter, SessionOptions

    token = CancelToken()
    session = CreateSession(SessionOptions(project_name="my-app"), Prompter(token), token)
    exit_code = await session.run()
"""

from .materializer import (
    FetchError,
    ManifestError,
    TemplateFetcher,
    TemplateSource,
    patch_manifest,
)
from .prompts import Prompter
from .session import CreateSession, SessionOptions, main
from .templates import TEMPLATES, resolve_template_id

__all__ = [
    "CreateSession",
    "FetchError",
    "ManifestError",
    "Prompter",
    "SessionOptions",
    "TEMPLATES",
    "TemplateFetcher",
    "TemplateSource",
    "main",
    "patch_manifest",
    "resolve_template_id",
]
