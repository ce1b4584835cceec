"""Datasette plugin for owner-scoped suggestions with public/private visibility."""

__version__ = "0.1.0"

from datasette_suggestions.plugin import (  # noqa: E402
    extra_template_vars,
    prepare_jinja2_environment,
    register_routes,
    startup,
)

__all__ = [
    "extra_template_vars",
    "prepare_jinja2_environment",
    "register_routes",
    "startup",
]
