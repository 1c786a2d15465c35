"""Player routes: game overview, joining, progress and claiming tags."""

from xitzin import Redirect, Request, Xitzin
from xitzin.auth import get_identity, require_certificate

from ..procedures import Procedures, Result


def _procedures(request: Request) -> Procedures:
    return request.app.state.procedures


def _player_id(request: Request) -> str:
    """The certificate fingerprint is the player's identity."""
    return get_identity(request).fingerprint


def _claim_message(result: Result) -> str:
    if not result.ok:
        return result.message or "That did not work."
    if result.value.replayed:
        return "You already claimed this checkpoint."
    return f"Checkpoint {result.value.progress.order_index} claimed!"


def _render_progress(
    app: Xitzin, request: Request, code: str, message: str = ""
):
    """Render the player's own view of a game."""
    procedures = _procedures(request)
    game = procedures.call("get_game", game_code=code)
    if not game.ok:
        return app.template("error.gmi", message=game.message)
    progress = procedures.call(
        "player_progress", game_code=code, player_id=_player_id(request)
    )
    return app.template(
        "progress.gmi",
        game=game.value,
        progress=progress.value if progress.ok else None,
        message=message,
    )


def register_routes(app: Xitzin) -> None:
    """Register player routes."""

    @app.gemini("/games/{code}", name="game")
    def game(request: Request, code: str):
        """Game status and leaderboard."""
        procedures = _procedures(request)
        found = procedures.call("get_game", game_code=code)
        if not found.ok:
            return app.template("error.gmi", message=found.message)
        standings = procedures.call("leaderboard", game_code=code)
        checkpoints = procedures.call("list_checkpoints", game_code=code)
        return app.template(
            "game.gmi",
            game=found.value,
            standings=standings.value or [],
            active_checkpoints=sum(1 for c in checkpoints.value or [] if c.is_active),
        )

    @app.input(
        "/games/{code}/join",
        prompt="What name should appear on the leaderboard?",
        name="join",
    )
    @require_certificate
    def join(request: Request, code: str, query: str):
        """Register the caller and join them to the game."""
        name = query.strip()
        if not name:
            return app.template("error.gmi", message="A name is required.")

        procedures = _procedures(request)
        player_id = _player_id(request)
        registered = procedures.call(
            "upsert_player", display_name=name, player_id=player_id
        )
        if not registered.ok:
            return app.template("error.gmi", message=registered.message)
        joined = procedures.call("join_game", game_code=code, player_id=player_id)
        if not joined.ok:
            return app.template("error.gmi", message=joined.message)
        return Redirect(f"/games/{code}/me")

    @app.gemini("/games/{code}/me", name="progress")
    @require_certificate
    def progress(request: Request, code: str):
        """The caller's claims and next clue."""
        return _render_progress(app, request, code)

    @app.gemini("/games/{code}/t/{tag_code}", name="claim")
    @require_certificate
    def claim(request: Request, code: str, tag_code: str):
        """Claim a checkpoint. This is the URL written onto the physical tag."""
        result = _procedures(request).call(
            "claim_checkpoint",
            player_id=_player_id(request),
            game_code=code,
            tag_code=tag_code,
        )
        return _render_progress(app, request, code, message=_claim_message(result))
