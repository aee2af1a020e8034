"""Rich console output for derived categorical outlooks."""

from __future__ import annotations

import sys
from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from classifier import risk_display_name, risk_rank
from config import CATEGORICAL_TYPE, USER_DRAWN_LEVEL, OutlookDay, RiskFeature


# Categorical level → (Rich style, emoji)
RISK_STYLES: dict[str, tuple[str, str]] = {
    "HIGH": ("bold magenta", "🟣"),
    "MDT":  ("red",          "🔴"),
    "ENH":  ("dark_orange",  "🟠"),
    "SLGT": ("yellow",       "🟡"),
    "MRGL": ("green",        "🟢"),
    "TSTM": ("dim",          "⚪"),
}


def render_categorical(
    outlook_day: OutlookDay,
    derived: list[RiskFeature],
    in_sync: Optional[bool] = None,
    violations: Optional[list[tuple[str, str]]] = None,
    console: Optional[Console] = None,
) -> None:
    """Render a day's derived categorical layer (plus any user-drawn TSTM) to the terminal."""
    console = console or Console(file=sys.stdout)

    timestamp = datetime.now().strftime("%b %d, %Y @ %I:%M %p")
    console.print()
    console.rule(f"[bold]DAY {outlook_day.day} CATEGORICAL — {timestamp}[/bold]",
                 style="bright_white")
    console.print()

    tstm = outlook_day.outlooks.get(CATEGORICAL_TYPE, {}).get(USER_DRAWN_LEVEL, [])
    features = sorted(derived, key=lambda f: -risk_rank(f.label))

    if not features and not tstm:
        console.print("[bold green]No categorical risk derived from the probabilistic "
                      "outlooks.[/bold green]\n")
    else:
        lines: list[Text] = []
        for feature in features:
            lines.append(_feature_line(feature))
            if feature.original_probability:
                lines.append(Text(f"     From: {feature.original_probability}", style="dim"))
        if tstm:
            style, emoji = RISK_STYLES[USER_DRAWN_LEVEL]
            lines.append(Text.assemble(
                (f"  {emoji} {risk_display_name(USER_DRAWN_LEVEL)}", style),
                f" — {len(tstm)} user-drawn area(s), kept as drawn",
            ))

        content = Text("\n")
        for line in lines:
            content.append_text(line)
            content.append("\n")
        console.print(Panel(content, expand=False, padding=(0, 2)))

    if in_sync is not None:
        if in_sync:
            console.print("  [green]Stored categorical layer matches the probabilistic "
                          "outlooks.[/green]")
        else:
            console.print("  [bold yellow]⚠ Stored categorical layer is out of date.[/bold yellow]")

    if violations:
        pairs = ", ".join(f"{hi} outside {lo}" for hi, lo in violations)
        console.print(f"  [bold red]⚠ Nesting violated: {pairs}[/bold red]")

    console.print()


def _feature_line(feature: RiskFeature) -> Text:
    style, emoji = RISK_STYLES.get(feature.label, ("white", "⚪"))
    area = feature.geometry.area
    return Text.assemble(
        (f"  {emoji} {risk_display_name(feature.label)}", style),
        f" — {area:.2f} sq deg",
    )
