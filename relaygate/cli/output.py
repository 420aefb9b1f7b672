"""
Relaygate CLI - Rich Output Helpers

Functions:
    print_json      - Print formatted JSON
    print_error     - Print error message
    print_success   - Print success message
    print_warning   - Print warning message
    print_key_value - Print aligned key/value pairs
    print_status    - Print a tenant's connection status
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from rich.console import Console
from rich.json import JSON

console = Console()
err_console = Console(stderr=True)

# Colour per connection state
STATE_STYLES = {
    "connected": "green",
    "awaiting_pairing": "yellow",
    "initializing": "blue",
    "disconnected": "dim",
    "auth_failed": "red",
    "error": "red",
}


def print_json(data: dict | list, indent: int = 2, highlight: bool = True) -> None:
    json_str = json.dumps(data, indent=indent, default=str)
    if highlight:
        console.print(JSON(json_str))
    else:
        console.out(json_str, highlight=False)


def print_error(
    message: str,
    details: Optional[str] = None,
    hint: Optional[str] = None,
) -> None:
    """
    Print error message to stderr.

    Args:
        message: Error message
        details: Optional detailed error information
        hint: Optional hint for resolving the error
    """
    err_console.print(f"[bold red]Error:[/bold red] {message}")

    if details:
        err_console.print(f"[dim]{details}[/dim]")

    if hint:
        err_console.print(f"[yellow]Hint:[/yellow] {hint}")


def print_success(message: str, details: Optional[str] = None) -> None:
    console.print(f"[bold green]Success:[/bold green] {message}")

    if details:
        console.print(f"[dim]{details}[/dim]")


def print_warning(message: str, details: Optional[str] = None) -> None:
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")

    if details:
        console.print(f"[dim]{details}[/dim]")


def print_key_value(
    items: list[tuple[str, Any]],
    title: Optional[str] = None,
    separator: str = ":",
    key_style: str = "cyan",
) -> None:
    """
    Print key-value pairs in a formatted list.

    Args:
        items: List of (key, value) tuples
        title: Optional title
        separator: Separator between key and value
        key_style: Style for keys
    """
    if title:
        console.print(f"[bold]{title}[/bold]")
        console.print()

    max_key_len = max(len(str(k)) for k, _ in items) if items else 0

    for key, value in items:
        padded_key = str(key).ljust(max_key_len)
        console.print(f"  [{key_style}]{padded_key}[/{key_style}]{separator} {value}")


def print_status(
    tenant_id: str,
    status: str,
    error: Optional[str] = None,
    updated_at: Optional[datetime] = None,
) -> None:
    """Print a tenant's connection status with a coloured state."""
    style = STATE_STYLES.get(status, "white")
    items: list[tuple[str, Any]] = [
        ("Tenant", tenant_id),
        ("Status", f"[{style}]{status}[/{style}]"),
    ]
    if error:
        items.append(("Error", truncate_string(error, 120)))
    if updated_at is not None:
        items.append(("Updated", format_timestamp(updated_at)))
    print_key_value(items)


def format_timestamp(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def truncate_string(s: str, max_length: int, suffix: str = "...") -> str:
    if len(s) <= max_length:
        return s
    return s[: max_length - len(suffix)] + suffix
