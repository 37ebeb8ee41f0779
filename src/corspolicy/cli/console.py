# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Shared Rich console for CLI output."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

from corspolicy.matchers import describe
from corspolicy.policy import Policy

CORSPOLICY_THEME = Theme({
    "info": "cyan",
    "success": "bold green",
    "warning": "bold yellow",
    "error": "bold red",
    "brand": "bold magenta",
    "dim": "dim",
})

console = Console(theme=CORSPOLICY_THEME)


def print_header() -> None:
    from corspolicy import __version__

    console.print(f"[brand]corspolicy[/brand] [dim](v{__version__})[/dim]")


def print_policy_table(policy: Policy, title: str = "CORS policy") -> None:
    """Render a compiled policy as a two-column table."""
    table = Table(title=f"[brand]{escape(title)}[/brand]", border_style="dim", show_lines=True)
    table.add_column("Setting", style="bold", min_width=22)
    table.add_column("Value", min_width=30)

    def flag(value: bool) -> str:
        return "[success]yes[/success]" if value else "[dim]no[/dim]"

    rows = [
        ("allowed_origins", policy.allowed_origins),
        ("allowed_methods", policy.allowed_methods),
        ("allowed_headers", policy.allowed_headers),
        ("exposed_headers", policy.exposed_headers),
    ]
    for name, rule in rows:
        note = " [warning](reflected)[/warning]" if name in policy.reflected else ""
        table.add_row(name, f"{escape(describe(rule))}{note}")

    table.add_row("allow_credentials", flag(policy.allow_credentials))
    table.add_row("max_age_seconds", "[dim]not sent[/dim]" if policy.max_age is None else str(policy.max_age))
    table.add_row("allow_private_network", flag(policy.allow_private_network))
    table.add_row("vary_origin", flag(policy.vary_origin))

    console.print(table)
