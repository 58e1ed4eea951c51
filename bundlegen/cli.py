"""bundlegen CLI - Main entry point and command registration hub."""
# ruff: noqa: E402 - Intentional lazy loading: commands imported after cli group definition

import click
from rich.table import Table

from bundlegen import __version__
from bundlegen.pipeline.ui import console


class VerboseGroup(click.Group):
    """Help system that lists registered commands by category."""

    def format_commands(self, ctx, formatter):
        """Override to suppress default command listing (we use categorized format in format_help)."""
        pass

    COMMAND_CATEGORIES = {
        "BUILD": {
            "title": "BUILD",
            "description": "Produce the production config and bundles",
            "commands": ["generate"],
            "command_meta": {
                "generate": {
                    "run_when": "Before deploying, or after changing config, hooks or operations",
                },
            },
        },
    }

    def format_help(self, ctx, formatter):
        """Generate Rich-styled categorized help."""
        super().format_help(ctx, formatter)

        registered = {
            name: cmd
            for name, cmd in self.commands.items()
            if not name.startswith("_") and not getattr(cmd, "hidden", False)
        }

        console.print()
        console.rule("[bold]COMMANDS[/bold]")

        for category_data in self.COMMAND_CATEGORIES.values():
            console.print(f"\n[bold cyan]{category_data['title']}[/bold cyan]")
            console.print(f"[dim]{category_data['description']}[/dim]")

            table = Table(show_header=False, box=None, padding=(0, 2, 0, 0))
            table.add_column("Command", style="cmd", width=18)
            table.add_column("Description", style="white")
            table.add_column("When", style="dim", width=40)

            for cmd_name in category_data["commands"]:
                if cmd_name not in registered:
                    continue
                cmd = registered[cmd_name]

                first_line = (cmd.help or "").split("\n")[0].strip()
                period_idx = first_line.find(".")
                short_help = first_line[:period_idx] if period_idx > 0 else first_line
                if len(short_help) > 45:
                    short_help = short_help[:45].rsplit(" ", 1)[0] + "..."

                cmd_meta = category_data.get("command_meta", {}).get(cmd_name, {})
                hint = f"RUN: {cmd_meta['run_when']}" if "run_when" in cmd_meta else ""

                table.add_row(cmd_name, short_help, hint)

            console.print(table)

        console.print()
        console.rule()
        console.print("For detailed options: [cmd]bundlegen <command> --help[/cmd]")


@click.group(cls=VerboseGroup)
@click.version_option(version=__version__, prog_name="bundlegen")
@click.help_option("-h", "--help")
def cli():
    """bundlegen - Build pipeline for config, hooks, webhooks and operations

    \b
    QUICK START:
      bundlegen generate              # Bundle, run config, bundle the rest
      bundlegen generate --offline    # No network during config generation

    \b
    For detailed options: bundlegen <command> --help"""
    pass


from bundlegen.commands.generate import generate

cli.add_command(generate)


def main():
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
