"""Organizer routes: game lifecycle, checkpoints and cleanup."""

from functools import wraps

from xitzin import Redirect, Request, Xitzin
from xitzin.auth import get_identity, require_certificate

from ..logging import get_logger
from ..procedures import Procedures

logger = get_logger(__name__)


def _procedures(request: Request) -> Procedures:
    return request.app.state.procedures


def require_organizer(handler):
    """Only fingerprints listed in the organizer config may continue."""

    @wraps(handler)
    def wrapper(request: Request, *args, **kwargs):
        fingerprint = get_identity(request).fingerprint
        if fingerprint not in request.app.state.config.organizers:
            logger.warning("organizer_denied", fingerprint=fingerprint)
            return request.app.template(
                "error.gmi", message="This page is for organizers only."
            )
        return handler(request, *args, **kwargs)

    return wrapper


def _render_game(app: Xitzin, request: Request, code: str, message: str = ""):
    procedures = _procedures(request)
    game = procedures.call("get_game", game_code=code)
    if not game.ok:
        return app.template("error.gmi", message=game.message)
    checkpoints = procedures.call("list_checkpoints", game_code=code)
    standings = procedures.call("leaderboard", game_code=code)
    return app.template(
        "admin_game.gmi",
        game=game.value,
        checkpoints=checkpoints.value or [],
        standings=standings.value or [],
        message=message,
    )


def _parse_int(value: str) -> int | None:
    try:
        return int(value)
    except ValueError:
        return None


def _register_game_routes(app: Xitzin) -> None:
    """Register game creation and lifecycle routes."""

    @app.gemini("/admin", name="admin")
    @require_certificate
    @require_organizer
    def admin_home(request: Request):
        games = _procedures(request).call("list_games")
        return app.template("admin.gmi", games=games.value or [], message="")

    @app.input("/admin/new", prompt="Name of the new game:", name="admin_new")
    @require_certificate
    @require_organizer
    def new_game(request: Request, query: str):
        name = query.strip()
        if not name:
            return app.template("error.gmi", message="A game name is required.")
        # One game at a time: a new game replaces everything
        procedure = (
            "reset_game" if request.app.state.config.single_game else "create_game"
        )
        created = _procedures(request).call(procedure, name=name)
        if not created.ok:
            return app.template("error.gmi", message=created.message)
        return Redirect(f"/admin/games/{created.value.code}")

    @app.gemini("/admin/games/{code}", name="admin_game")
    @require_certificate
    @require_organizer
    def game(request: Request, code: str):
        return _render_game(app, request, code)

    @app.gemini("/admin/games/{code}/start", name="admin_start")
    @require_certificate
    @require_organizer
    def start(request: Request, code: str):
        result = _procedures(request).call("start_game", game_code=code)
        return _render_game(
            app, request, code, message=result.message or "Game started."
        )

    @app.gemini("/admin/games/{code}/end", name="admin_end")
    @require_certificate
    @require_organizer
    def end(request: Request, code: str):
        result = _procedures(request).call("end_game", game_code=code)
        return _render_game(app, request, code, message=result.message or "Game ended.")

    @app.input(
        "/admin/games/{code}/delete",
        prompt="Type YES to delete this game with all of its checkpoints and claims:",
        name="admin_delete_game",
    )
    @require_certificate
    @require_organizer
    def delete(request: Request, code: str, query: str):
        if query.strip().upper() != "YES":
            return Redirect(f"/admin/games/{code}")
        result = _procedures(request).call(
            "delete_game", game_code=code, cascade_orphans=True
        )
        games = _procedures(request).call("list_games")
        message = result.message or (
            f"Deleted {code}: {result.value.checkpoints} checkpoints, "
            f"{result.value.progress} claims, {result.value.players} players."
        )
        return app.template("admin.gmi", games=games.value or [], message=message)


def _register_checkpoint_routes(app: Xitzin) -> None:
    """Register checkpoint and player management routes."""

    @app.input(
        "/admin/games/{code}/register/{order}/{tag_code}",
        prompt="Location name:",
        name="admin_register",
    )
    @require_certificate
    @require_organizer
    def register(request: Request, code: str, order: str, tag_code: str, query: str):
        order_index = _parse_int(order)
        if order_index is None:
            return _render_game(app, request, code, message="Order must be a number.")
        result = _procedures(request).call(
            "register_checkpoint",
            game_code=code,
            tag_code=tag_code,
            location_name=query.strip() or None,
            order_index=order_index,
        )
        return _render_game(
            app, request, code, message=result.message or f"Registered {tag_code}."
        )

    @app.input(
        "/admin/games/{code}/activate/{order}/{tag_code}",
        prompt="Clue for this checkpoint:",
        name="admin_activate",
    )
    @require_certificate
    @require_organizer
    def activate(request: Request, code: str, order: str, tag_code: str, query: str):
        order_index = _parse_int(order)
        if order_index is None:
            return _render_game(app, request, code, message="Order must be a number.")
        result = _procedures(request).call(
            "activate_checkpoint",
            game_code=code,
            tag_code=tag_code,
            order_index=order_index,
            clue=query.strip() or None,
            activated_by=get_identity(request).fingerprint,
        )
        return _render_game(
            app, request, code, message=result.message or f"Activated {tag_code}."
        )

    def _toggle(request: Request, code: str, checkpoint_id: str, active: bool):
        result = _procedures(request).call(
            "set_checkpoint_active",
            checkpoint_id=_parse_int(checkpoint_id),
            active=active,
        )
        state = "enabled" if active else "disabled"
        return _render_game(
            app, request, code, message=result.message or f"Checkpoint {state}."
        )

    @app.gemini(
        "/admin/games/{code}/checkpoints/{checkpoint_id}/enable",
        name="admin_enable",
    )
    @require_certificate
    @require_organizer
    def enable(request: Request, code: str, checkpoint_id: str):
        return _toggle(request, code, checkpoint_id, True)

    @app.gemini(
        "/admin/games/{code}/checkpoints/{checkpoint_id}/disable",
        name="admin_disable",
    )
    @require_certificate
    @require_organizer
    def disable(request: Request, code: str, checkpoint_id: str):
        return _toggle(request, code, checkpoint_id, False)

    @app.gemini(
        "/admin/games/{code}/checkpoints/{checkpoint_id}/delete",
        name="admin_delete_checkpoint",
    )
    @require_certificate
    @require_organizer
    def delete_checkpoint(request: Request, code: str, checkpoint_id: str):
        result = _procedures(request).call(
            "delete_checkpoint", checkpoint_id=_parse_int(checkpoint_id)
        )
        message = result.message or (
            f"Checkpoint deleted with {result.value.progress} claims."
        )
        return _render_game(app, request, code, message=message)

    @app.gemini(
        "/admin/games/{code}/players/{player_id}/remove",
        name="admin_remove_player",
    )
    @require_certificate
    @require_organizer
    def remove_player(request: Request, code: str, player_id: str):
        result = _procedures(request).call(
            "delete_player", player_id=player_id, game_code=code
        )
        return _render_game(
            app, request, code, message=result.message or "Player removed from game."
        )


def register_routes(app: Xitzin) -> None:
    """Register organizer routes."""
    _register_game_routes(app)
    _register_checkpoint_routes(app)
