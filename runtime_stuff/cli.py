"""
CLI Entry Point

Typer-based command line interface for inspecting how the engine sees a type.
"""

import importlib
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from runtime_stuff.config import ConfigLoader, configure
from runtime_stuff.core.errors import ConfigError
from runtime_stuff.core.members import MemberDescriptor, NameKind, describe


# Initialize Typer app
app = typer.Typer(
    name="runtime-stuff",
    help="Runtime Stuff - Inspect members, aliases and ORM metadata of Python types",
    add_completion=False,
)

console = Console()


@app.callback()
def main(
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="Path to configuration file (YAML or JSON)"),
):
    """
    Load the configuration before running a command.
    """
    if config_path is None:
        return
    try:
        configure(config_path)
    except FileNotFoundError:
        console.print(f"[red]Error:[/] Configuration file not found: {config_path}")
        raise typer.Exit(1)
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/] {e}")
        raise typer.Exit(1)


def load_type(target: str) -> type:
    """Import ``module:Class`` (or ``module.Class``) and return the class."""
    if ":" in target:
        module_name, _, attr_path = target.partition(":")
    else:
        module_name, _, attr_path = target.rpartition(".")
    if not module_name or not attr_path:
        console.print(f"[red]Error:[/] Expected MODULE:CLASS, got '{target}'")
        raise typer.Exit(1)

    try:
        found = importlib.import_module(module_name)
        for part in attr_path.split("."):
            found = getattr(found, part)
    except (ImportError, AttributeError) as e:
        console.print(f"[red]Error:[/] Cannot load '{target}': {e}")
        raise typer.Exit(1)

    if not isinstance(found, type):
        console.print(f"[red]Error:[/] '{target}' is not a class")
        raise typer.Exit(1)
    return found


def _type_label(t: object) -> str:
    return t.__name__ if isinstance(t, type) else repr(t).replace("typing.", "")


def _flags(member: MemberDescriptor) -> str:
    flags = []
    if member.is_primary_key:
        flags.append("[yellow]key[/]")
    if member.is_foreign_key:
        flags.append(f"[magenta]fk:{member.foreign_key_name}[/]")
    if member.is_not_mapped:
        flags.append("[dim]not mapped[/]")
    if member.is_collection:
        flags.append("collection")
    if member.is_dictionary:
        flags.append("dictionary")
    if member.is_static:
        flags.append("static")
    if member.kind.value in ("property", "field") and not member.can_write:
        flags.append("[dim]read-only[/]")
    return ", ".join(flags)


def _aliases(member: MemberDescriptor) -> str:
    aliases = {
        "display": member.display_name,
        "json": member.json_name,
        "xml": member.xml_element_name or member.xml_attribute_name,
    }
    if member.column_name != member.name:
        aliases["column"] = member.column_name
    return ", ".join(f"{k}={v}" for k, v in aliases.items() if v)


@app.command("describe")
def describe_type(
    target: str = typer.Argument(..., help="Type to describe, as MODULE:CLASS"),
    show_private: bool = typer.Option(False, "--private", "-p", help="Include non-public members"),
):
    """
    Show the members of a type with their kinds, value types and aliases.

    Example:
        runtime-stuff describe myapp.models:User
    """
    type_desc = describe(load_type(target))

    console.print(Panel(
        f"[bold]{escape(type_desc.name)}[/]\n"
        f"Module: {type_desc.owner.__module__}\n"
        f"Bases: {', '.join(b.__name__ for b in type_desc.base_types) or '-'}",
        title="Type",
    ))

    table = Table(show_header=True, header_style="bold")
    table.add_column("Member", style="cyan")
    table.add_column("Kind")
    table.add_column("Type")
    table.add_column("Flags")
    table.add_column("Aliases")

    members = [m for m in type_desc.members if show_private or m.is_public]
    for member in members:
        table.add_row(
            escape(member.name),
            member.kind.value,
            escape(_type_label(member.value_type)),
            _flags(member),
            escape(_aliases(member)),
        )

    console.print(table)
    console.print(f"\n[bold]Members:[/] {len(members)}")


@app.command()
def resolve(
    target: str = typer.Argument(..., help="Type to search, as MODULE:CLASS"),
    name: str = typer.Argument(..., help="Member name or alias"),
    kind: List[str] = typer.Option([], "--kind", "-k", help="Restrict to name kinds (name, display, json, xml, column, table, schema)"),
):
    """
    Resolve a name or alias to a member.

    Example:
        runtime-stuff resolve myapp.models:User user_id --kind json
    """
    type_desc = describe(load_type(target))
    try:
        name_kinds = NameKind.from_strings(kind) if kind else NameKind.ANY
    except ValueError as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1)

    member = type_desc.get_member(name, name_kinds)
    if member is None:
        console.print(f"[red]Not found:[/] '{escape(name)}' on {escape(type_desc.name)}")
        raise typer.Exit(1)

    console.print(
        f"[green]{escape(name)}[/] -> [bold]{escape(member.name)}[/] "
        f"({member.kind.value}: {escape(_type_label(member.value_type))})"
    )
    aliases = _aliases(member)
    if aliases:
        console.print(f"  Aliases: {escape(aliases)}")


@app.command()
def orm(
    target: str = typer.Argument(..., help="Type to map, as MODULE:CLASS"),
):
    """
    Show the table, keys and columns a type maps to.

    Example:
        runtime-stuff orm myapp.models:Order
    """
    type_desc = describe(load_type(target))

    console.print(f"\n[bold]Table:[/] {escape(type_desc.full_table_name())}")
    console.print(f"  Schema: {type_desc.schema_name or '-'}")
    console.print(f"  Primary keys: {', '.join(p.name for p in type_desc.primary_keys) or '-'}")
    if type_desc.foreign_keys:
        console.print(
            "  Foreign keys: "
            + ", ".join(f"{p.name} -> {p.foreign_key_name}" for p in type_desc.foreign_keys)
        )

    table = Table(show_header=True, header_style="bold")
    table.add_column("Column", style="cyan")
    table.add_column("Member")
    table.add_column("Type")
    table.add_column("Key")

    for column in type_desc.columns:
        table.add_row(
            escape(column.column_name),
            escape(column.name),
            escape(_type_label(column.value_type)),
            "[yellow]yes[/]" if column.is_primary_key else "",
        )

    console.print(table)
    console.print(f"\n[bold]Columns:[/] {len(type_desc.columns)}")


@app.command("init-config")
def init_config(
    output: str = typer.Argument("runtime_stuff.yaml", help="Output configuration file path"),
):
    """
    Create an example configuration file.
    """
    ConfigLoader.create_example_config(output)
    console.print(f"[green]Example configuration created:[/] {output}")


@app.command()
def version():
    """Show version information."""
    from runtime_stuff import __version__
    console.print(f"Runtime Stuff v{__version__}")


if __name__ == "__main__":
    app()
