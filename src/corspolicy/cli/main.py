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
"""Command-line tool to validate and inspect CORS policy files."""

from __future__ import annotations

import click

from corspolicy.cli.console import print_header


class CorsPolicyCLI(click.Group):
    """Click group that prints the corspolicy header on help."""

    def format_help(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        print_header()
        super().format_help(ctx, formatter)


@click.group(cls=CorsPolicyCLI)
@click.version_option(package_name="corspolicy")
def cli() -> None:
    """corspolicy: declarative CORS policy checker."""


from corspolicy.cli.check import check_command, show_command  # noqa: E402

cli.add_command(check_command, name="check")
cli.add_command(show_command, name="show")
