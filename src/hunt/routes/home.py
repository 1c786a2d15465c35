"""Home and help routes."""

from xitzin import Request, Xitzin


def register_routes(app: Xitzin) -> None:
    """Register home routes."""

    @app.gemini("/", name="home")
    def home(request: Request):
        games = request.app.state.procedures.call("list_games")
        return app.template("home.gmi", games=games.value or [])

    @app.gemini("/help", name="help")
    def help_page(request: Request):
        return app.template("help.gmi")
