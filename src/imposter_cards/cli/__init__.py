"""Command-line extensions for imposter-cards."""

from __future__ import annotations

from imposter_cards.cli.prompts import ImposterCLIPlugin, prompts_group, show_settings

__all__ = ["ImposterCLIPlugin", "prompts_group", "show_settings"]
