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
"""'corspolicy check' and 'corspolicy show': validate and inspect policy files."""

from __future__ import annotations

from pathlib import Path

import click
from rich.markup import escape

from corspolicy.cli.console import console, print_policy_table
from corspolicy.compiler import DEFAULT_SECTION, load_policy_config
from corspolicy.core.config import Config
from corspolicy.kernel.exceptions import CorsPolicyException
from corspolicy.logging import StructlogAdapter
from corspolicy.options import PolicyOptions
from corspolicy.policy import Policy


def _load(
    path: Path,
    section: str,
    strict: bool,
    reflect_wildcards: bool,
    profiles: tuple[str, ...],
) -> tuple[Config, Policy]:
    """Load and compile, printing a diagnostic and exiting 1 on failure."""
    try:
        config = Config.from_file(path, active_profiles=list(profiles))
        StructlogAdapter().configure(config)
        options = config.bind(PolicyOptions)
        update: dict[str, object] = {}
        if strict:
            update["unknown_keys"] = "strict"
        if reflect_wildcards:
            update["reflect_wildcards_with_credentials"] = True
        if update:
            options = options.model_copy(update=update)
        return config, load_policy_config(config, section=section, options=options)
    except CorsPolicyException as exc:
        console.print(f"  [error]✗[/error] {escape(str(exc))} [dim]({exc.code})[/dim]")
        raise SystemExit(1) from exc


_path_argument = click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
_section_option = click.option(
    "--section",
    default=DEFAULT_SECTION,
    show_default=True,
    help="Dotted key holding the policy; falls back to top-level keys when absent.",
)
_strict_option = click.option("--strict", is_flag=True, help="Reject unknown policy keys.")
_reflect_option = click.option(
    "--reflect-wildcards",
    is_flag=True,
    help="Echo the request instead of rejecting '*' rules combined with credentials.",
)
_profile_option = click.option("--profile", "profiles", multiple=True, help="Profile overlay to merge (repeatable).")


@click.command()
@_path_argument
@_section_option
@_strict_option
@_reflect_option
@_profile_option
def check_command(
    path: Path,
    section: str,
    strict: bool,
    reflect_wildcards: bool,
    profiles: tuple[str, ...],
) -> None:
    """Validate the CORS policy in PATH."""
    config, policy = _load(path, section, strict, reflect_wildcards, profiles)
    console.print(f"  [success]✓[/success] {escape(str(path))}: policy is valid")
    for source in config.loaded_sources:
        console.print(f"    [dim]loaded {escape(source)}[/dim]")
    for name in policy.reflected:
        console.print(f"    [warning]![/warning] {name}: '*' compiled to per-request reflection")


@click.command()
@_path_argument
@_section_option
@_strict_option
@_reflect_option
@_profile_option
def show_command(
    path: Path,
    section: str,
    strict: bool,
    reflect_wildcards: bool,
    profiles: tuple[str, ...],
) -> None:
    """Print the compiled CORS policy in PATH."""
    _, policy = _load(path, section, strict, reflect_wildcards, profiles)
    print_policy_table(policy, title=str(path))
