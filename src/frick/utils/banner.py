import pyfiglet
from rich.align import Align
from rich.text import Text


def render_banner(is_blocking: bool) -> Align:
    """Builds the centered FRICK banner, colored by blocking state."""
    font = pyfiglet.Figlet(font="small")
    art_text = font.renderText("FRICK")

    style = "bold red" if is_blocking else "bold green"
    caption = "BLOCKING" if is_blocking else "NOT BLOCKING"

    full_text = Text(art_text, style=style) + Text(
        f"\n{caption}", justify="center", style="bold"
    )
    return Align.center(full_text)
