from pydantic import BaseModel
from pydantic import ConfigDict


class Theme(BaseModel):
    """Color palette for a rendered heatmap.

    `levels` runs from "no activity" (index 0) to "highest activity" (index 4).
    """

    model_config = ConfigDict(frozen=True)

    bg: str
    text: str
    subtext: str
    border: str
    levels: tuple[str, str, str, str, str]


DEFAULT_THEME = "codeberg"

THEMES: dict[str, Theme] = {
    "codeberg": Theme(
        bg="#1e1e2e",
        text="#cdd6f4",
        subtext="#a6adc8",
        border="#313244",
        levels=("#313244", "#7d3a1e", "#c4592c", "#e8733a", "#f5a06e"),
    ),
    "codeberg_light": Theme(
        bg="#ffffff",
        text="#1e1e2e",
        subtext="#6c6f85",
        border="#e0e0e0",
        levels=("#ebedf0", "#f5c9a8", "#e8a86a", "#d4722d", "#a84a0e"),
    ),
    "github": Theme(
        bg="#0d1117",
        text="#e6edf3",
        subtext="#8b949e",
        border="#21262d",
        levels=("#161b22", "#0e4429", "#006d32", "#26a641", "#39d353"),
    ),
    "github_light": Theme(
        bg="#ffffff",
        text="#24292f",
        subtext="#57606a",
        border="#d0d7de",
        levels=("#ebedf0", "#9be9a8", "#40c463", "#30a14e", "#216e39"),
    ),
}


def get_theme(key: str | None) -> Theme:
    """Return the theme registered under key, falling back to the default."""

    if key and key in THEMES:
        return THEMES[key]
    return THEMES[DEFAULT_THEME]
