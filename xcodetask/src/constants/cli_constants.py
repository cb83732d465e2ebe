from rich.text import Text

__version__ = "0.1.0"

APP_DESCRIPTION = "Build, sign, archive and export iOS apps in CI"


def get_banner_text() -> Text:
    return Text("xcodetask", style="bold cyan")
