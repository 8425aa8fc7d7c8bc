"""Template table for ``create-quapp``.

Maps each framework to the starter variants published under
``packages/templates`` of the Quapp repository, and turns a variant into the
template identifier understood by :class:`quapp.create.materializer.TemplateFetcher`.
"""

from __future__ import annotations

TEMPLATE_REPO = "Quapp-Store/Quapp/packages/templates"

TEMPLATES: dict[str, list[str]] = {
    "react": ["react", "react-ts", "react+swc", "react-ts+swc"],
    "vue": ["vue", "vue-ts"],
    "vanilla": ["vanilla-js", "vanilla-ts"],
}

FRAMEWORK_TITLES: dict[str, str] = {
    "react": "React",
    "vue": "Vue",
    "vanilla": "Vanilla",
}


def all_variants() -> list[str]:
    """Return every known variant, in table order."""
    return [variant for variants in TEMPLATES.values() for variant in variants]


def is_known_template(variant: str | None) -> bool:
    return bool(variant) and variant in all_variants()


def framework_for(variant: str) -> str | None:
    """Return the framework that publishes *variant*, or ``None``."""
    for framework, variants in TEMPLATES.items():
        if variant in variants:
            return framework
    return None


def framework_choices() -> list[tuple[str, str]]:
    """``(title, value)`` pairs for the framework prompt."""
    return [(FRAMEWORK_TITLES[name], name) for name in TEMPLATES]


def variant_choices(framework: str) -> list[tuple[str, str]]:
    """``(title, value)`` pairs for the variant prompt of *framework*.

    Raises:
        KeyError: If *framework* is not in the table.
    """
    return [(variant, variant) for variant in TEMPLATES[framework]]


def resolve_template_id(variant: str) -> str:
    """Return the remote template identifier for *variant*.

    Example::

        resolve_template_id("vue-ts") -> "Quapp-Store/Quapp/packages/templates/vue-ts"
    """
    return f"{TEMPLATE_REPO}/{variant}"
