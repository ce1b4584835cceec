"""
Datasette plugin serving a suggestions resource.

Authenticated actors can:
- List public suggestions, overall or for one user
- Create suggestions, public or private
- View a suggestion if it is public or their own
- Edit, update and delete their own suggestions
- See all of their own suggestions on the dashboard
"""

import logging
import re
from pathlib import Path
from typing import Any
from urllib.parse import quote, unquote

from datasette import Response, hookimpl
from datasette.utils.asgi import Request

from datasette_suggestions.config import SuggestionsConfig
from datasette_suggestions.service import (
    OperationResult,
    ResultKind,
    SuggestionService,
    SuggestionValidationError,
)
from datasette_suggestions.store import StorageError, SuggestionStore, Visibility

logger = logging.getLogger("datasette-suggestions")

# -----------------------------------------------------------------------------
# Plugin Configuration
# -----------------------------------------------------------------------------


def get_plugin_config(datasette) -> SuggestionsConfig:
    """Get plugin configuration from datasette.yaml."""
    return SuggestionsConfig.from_datasette(datasette)


def ensure_db_exists(db_path: Path) -> None:
    """Ensure the database exists with the current schema. Idempotent."""
    from datasette_suggestions.migrations import run_migrations

    run_migrations(db_path, verbose=False)


def get_service(datasette) -> SuggestionService:
    config = get_plugin_config(datasette)
    return SuggestionService(SuggestionStore(config.db_path), config.editable_fields)


# -----------------------------------------------------------------------------
# Actor Helpers
# -----------------------------------------------------------------------------


def get_actor_id(request: Request) -> str | None:
    """The acting identity for this request, if authenticated."""
    actor = request.actor
    if actor and actor.get("id"):
        return str(actor["id"])
    return None


def get_actor_display(request: Request) -> str | None:
    actor = request.actor or {}
    return actor.get("display") or actor.get("id")


def login_redirect(datasette) -> Response:
    return Response.redirect(get_plugin_config(datasette).login_path)


# -----------------------------------------------------------------------------
# Template Rendering Helpers
# -----------------------------------------------------------------------------


async def render_template(
    datasette,
    request,
    template_name: str,
    context: dict,
    status: int = 200,
) -> Response:
    """Render a template with the given context."""
    return Response.html(
        await datasette.render_template(
            template_name,
            {
                **context,
                "request": request,
                "actor_id": get_actor_id(request),
                "visibilities": [v.value for v in Visibility],
            },
            request=request,
        ),
        status=status,
    )


async def not_found(datasette, request) -> Response:
    return await render_template(datasette, request, "suggestions_404.html", {}, status=404)


async def server_error(datasette, request) -> Response:
    return await render_template(datasette, request, "suggestions_500.html", {}, status=500)


async def respond(datasette, request, result: OperationResult) -> Response:
    """Map the outcome of a mutation to a redirect or error page."""
    config = get_plugin_config(datasette)
    if result.kind == ResultKind.DONE:
        return Response.redirect(config.dashboard_path)
    if result.kind == ResultKind.REDIRECT:
        return Response.redirect(config.list_path)
    return await not_found(datasette, request)


async def request_method(request: Request) -> tuple[str, dict[str, Any]]:
    """
    The effective method and form data of a request.

    HTML forms can only POST, so a `_method` form field may turn a POST into
    a PUT or DELETE.
    """
    method = request.method
    formdata: dict[str, Any] = {}
    if method in ("POST", "PUT", "DELETE"):
        formdata = await request.post_vars()
    if method == "POST":
        override = (formdata.get("_method") or "").strip().upper()
        if override in ("PUT", "DELETE"):
            method = override
    return method, formdata


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------


async def suggestions_add(request: Request, datasette) -> Response:
    """Show the add form."""
    if not get_actor_id(request):
        return login_redirect(datasette)

    return await render_template(
        datasette,
        request,
        "suggestions_add.html",
        {"form": {"status": Visibility.PUBLIC.value}},
    )


async def suggestions_index(request: Request, datasette) -> Response:
    """
    GET: list every public suggestion, newest first.
    POST: create a suggestion owned by the actor.
    """
    actor_id = get_actor_id(request)
    if not actor_id:
        return login_redirect(datasette)

    if request.method == "POST":
        return await suggestions_create(request, datasette, actor_id)
    if request.method != "GET":
        return Response.text("Method not allowed", status=405)

    try:
        suggestions = get_service(datasette).list_public()
    except StorageError:
        logger.exception("Listing public suggestions failed")
        return await server_error(datasette, request)

    return await render_template(
        datasette,
        request,
        "suggestions_index.html",
        {"suggestions": suggestions, "heading": "Suggestions"},
    )


async def suggestions_create(request: Request, datasette, actor_id: str) -> Response:
    formdata = await request.post_vars()
    config = get_plugin_config(datasette)

    try:
        ensure_db_exists(config.db_path)
        get_service(datasette).create(formdata, actor_id, get_actor_display(request))
    except SuggestionValidationError as e:
        return await render_template(
            datasette,
            request,
            "suggestions_add.html",
            {"form": formdata, "error": str(e)},
            status=400,
        )
    except StorageError:
        logger.exception(f"Creating suggestion for {actor_id} failed")
        return await server_error(datasette, request)

    return Response.redirect(config.dashboard_path)


async def suggestion_item(request: Request, datasette) -> Response:
    """
    GET: show one suggestion if it is public or the actor owns it.
    PUT: update the actor's own suggestion.
    DELETE: remove the actor's own suggestion.
    """
    actor_id = get_actor_id(request)
    if not actor_id:
        return login_redirect(datasette)

    suggestion_id = request.url_vars["suggestion_id"]
    method, formdata = await request_method(request)
    service = get_service(datasette)

    try:
        if method == "GET":
            result = service.view(suggestion_id, actor_id)
            if result.kind != ResultKind.SHOW:
                return await not_found(datasette, request)
            return await render_template(
                datasette,
                request,
                "suggestions_show.html",
                {"suggestion": result.suggestion},
            )

        if method == "PUT":
            try:
                result = service.update(suggestion_id, formdata, actor_id)
            except SuggestionValidationError as e:
                return await render_template(
                    datasette,
                    request,
                    "suggestions_edit.html",
                    {"suggestion": e.suggestion, "form": formdata, "error": str(e)},
                    status=400,
                )
            return await respond(datasette, request, result)

        if method == "DELETE":
            return await respond(datasette, request, service.delete(suggestion_id, actor_id))

    except StorageError:
        logger.exception(f"{method} of suggestion {suggestion_id} failed")
        return await server_error(datasette, request)

    return Response.text("Method not allowed", status=405)


async def suggestion_edit(request: Request, datasette) -> Response:
    """Show the edit form for the actor's own suggestion."""
    actor_id = get_actor_id(request)
    if not actor_id:
        return login_redirect(datasette)

    suggestion_id = request.url_vars["suggestion_id"]

    try:
        result = get_service(datasette).edit(suggestion_id, actor_id)
    except StorageError:
        logger.exception(f"Loading suggestion {suggestion_id} for edit failed")
        return await server_error(datasette, request)

    if result.kind != ResultKind.SHOW:
        return await respond(datasette, request, result)

    suggestion = result.suggestion
    return await render_template(
        datasette,
        request,
        "suggestions_edit.html",
        {
            "suggestion": suggestion,
            "form": {"title": suggestion.title, "body": suggestion.body, "status": suggestion.status},
        },
    )


async def suggestions_by_user(request: Request, datasette) -> Response:
    """List one user's public suggestions."""
    if not get_actor_id(request):
        return login_redirect(datasette)

    user_id = unquote(request.url_vars["user_id"])

    try:
        suggestions = get_service(datasette).list_public(owner_id=user_id)
    except StorageError:
        logger.exception(f"Listing suggestions for user {user_id} failed")
        return await server_error(datasette, request)

    return await render_template(
        datasette,
        request,
        "suggestions_index.html",
        {"suggestions": suggestions, "heading": f"Suggestions by {user_id}", "user_id": user_id},
    )


async def suggestions_dashboard(request: Request, datasette) -> Response:
    """Show the actor's own suggestions, public and private."""
    actor_id = get_actor_id(request)
    if not actor_id:
        return login_redirect(datasette)

    try:
        suggestions = get_service(datasette).list_own(actor_id)
    except StorageError:
        logger.exception(f"Loading dashboard for {actor_id} failed")
        return await server_error(datasette, request)

    return await render_template(
        datasette,
        request,
        "suggestions_dashboard.html",
        {"suggestions": suggestions, "display": get_actor_display(request)},
    )


# -----------------------------------------------------------------------------
# Datasette Hooks
# -----------------------------------------------------------------------------


@hookimpl
def register_routes(datasette):
    """Register plugin routes with Datasette. More specific paths come first."""
    dashboard_path = get_plugin_config(datasette).dashboard_path
    return [
        (r"^/suggestions$", suggestions_index),
        (r"^/suggestions/add$", suggestions_add),
        (r"^/suggestions/edit/(?P<suggestion_id>[^/]+)$", suggestion_edit),
        (r"^/suggestions/user/(?P<user_id>[^/]+)$", suggestions_by_user),
        (r"^/suggestions/(?P<suggestion_id>[^/]+)$", suggestion_item),
        (rf"^{re.escape(dashboard_path)}$", suggestions_dashboard),
    ]


@hookimpl
def extra_template_vars(datasette):
    """Provide extra template variables."""
    from datasette_suggestions import __version__

    return {
        "suggestions_version": __version__,
        "dashboard_path": get_plugin_config(datasette).dashboard_path,
    }


def quote_path_segment(value) -> str:
    """Quote a value for use as one URL path segment, slashes included."""
    return quote(str(value), safe="")


# Register templates directory
TEMPLATES_DIR = Path(__file__).parent / "templates"


@hookimpl
def prepare_jinja2_environment(env, datasette):
    """Add the plugin's templates directory to the Jinja2 environment."""
    from jinja2 import ChoiceLoader, FileSystemLoader

    env.filters["quote_segment"] = quote_path_segment

    # Prepend our templates to the loader
    if hasattr(env, "loader"):
        env.loader = ChoiceLoader([FileSystemLoader(str(TEMPLATES_DIR)), env.loader])


@hookimpl
def startup(datasette):
    """Create or migrate the suggestions database on Datasette startup."""
    config = get_plugin_config(datasette)
    ensure_db_exists(config.db_path)
    logger.info(f"Suggestions database ready: {config.db_path}")
