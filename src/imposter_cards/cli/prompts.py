"""Operator CLI commands for imposter-cards.

Adds helpers for inspecting the prompt table and the effective settings
without starting the server.
"""

from __future__ import annotations

import random

import rich_click as click
from litestar.plugins import CLIPluginProtocol
from rich.console import Console
from rich.table import Table

from imposter_cards.core.settings import AppSettings
from imposter_cards.exceptions import InvalidCategoryError
from imposter_cards.game.prompts import DEFAULT_PROMPTS, PromptBank
from imposter_cards.game.types import PromptCategory

console = Console()


@click.group(name="prompts", help="Inspect the built-in prompt table.")
def prompts_group() -> None:
    """Inspect the built-in prompt table."""


@prompts_group.command(name="list", help="List prompt categories and how many pairs each holds.")
def list_categories() -> None:
    """List prompt categories and how many pairs each holds."""
    bank = PromptBank()

    table = Table(title="Prompt categories")
    table.add_column("Category", style="cyan")
    table.add_column("Pairs", style="green", justify="right")

    total = 0
    for category in bank.categories():
        if category == PromptCategory.RANDOM:
            continue
        count = len(DEFAULT_PROMPTS[category])
        total += count
        table.add_row(category, str(count))
    table.add_row(PromptCategory.RANDOM.value, str(total), style="dim")

    console.print(table)


@prompts_group.command(name="draw", help="Deal sample prompt pairs from a category.")
@click.argument("category", default=PromptCategory.RANDOM.value)
@click.option("--count", "-n", default=5, help="Number of pairs to draw")
@click.option("--seed", "-s", default=None, type=int, help="Seed for a reproducible draw")
@click.option("--plain", is_flag=True, help="Never append timeframe or location modifiers")
def draw_prompts(category: str, count: int, seed: int | None, plain: bool) -> None:
    """Deal sample prompt pairs from a category."""
    bank = PromptBank(rng=random.Random(seed), modifier_chance=0.0 if plain else 0.3)

    try:
        pairs = [bank.draw(category) for _ in range(count)]
    except InvalidCategoryError as exc:
        raise click.BadParameter(str(exc), param_hint="CATEGORY") from exc

    table = Table(title=f"Prompt pairs ({category})")
    table.add_column("ID", style="dim")
    table.add_column("Majority", style="green")
    table.add_column("Imposter", style="red")

    for pair in pairs:
        table.add_row(pair.id, pair.majority, pair.imposter)

    console.print(table)


@click.command(name="settings", help="Show the settings the server would start with.")
def show_settings() -> None:
    """Show the settings the server would start with."""
    settings = AppSettings.from_env()

    table = Table(title="Effective settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="yellow")

    table.add_row("debug", str(settings.debug))
    table.add_row("json_logs", str(settings.json_logs))
    table.add_row("room_max_age_seconds", str(settings.room_max_age_seconds))
    table.add_row("cleanup_interval_seconds", str(settings.cleanup_interval_seconds))
    table.add_row("ws_path", settings.ws_path)
    table.add_row("api_path", settings.api_path)

    console.print(table)
    console.print("\n[dim]Override any value with an IMPOSTER_<NAME> environment variable[/dim]")


class ImposterCLIPlugin(CLIPluginProtocol):
    """CLI plugin that adds operator commands to the ``litestar`` CLI.

    Adds the `prompts` command group with subcommands:
    - list: List prompt categories and pair counts
    - draw: Deal sample prompt pairs from a category

    Adds the `settings` command showing the effective configuration.
    """

    def on_cli_init(self, cli: click.Group) -> None:
        """Register the prompts group and the settings command."""
        cli.add_command(prompts_group)
        cli.add_command(show_settings)
