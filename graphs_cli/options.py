from __future__ import annotations

from typing import Any, Callable, Dict, Optional

import click


def _days(_: click.Context, __: click.Parameter, value: Optional[str]) -> Optional[str]:
    if value is None or value.lower() == "max" or value.isdigit():
        return value
    raise click.BadParameter("Use a number of days or 'max'.")


def graph_options(func: Callable[..., Any]) -> Callable[..., Any]:
    options = [
        click.option("--graph-type", required=True, help="Registered graph type, e.g. ticker."),
        click.option("--days", callback=_days, help="Day window, or 'max'."),
        click.option("--delta", type=click.Choice(["absolute", "percent"], case_sensitive=False)),
        click.option("--arg0", help="Renderer argument (exchange, currency)."),
        click.option("--arg0-resolved", help="Resolved renderer argument (currency pair)."),
        click.option("--user-id", type=int, help="User id for user-scoped graphs."),
        click.option("--user-hash", help="Graph hash for the user."),
        click.option("--technical-type", type=click.Choice(["sma", "ema", "bollinger"], case_sensitive=False)),
        click.option("--technical-period", type=int, help="Technical indicator period."),
    ]

    for option in reversed(options):
        func = option(func)
    return func


def build_graph_params(**kwargs: Any) -> Dict[str, Any]:
    return {key: value for key, value in kwargs.items() if value is not None}
