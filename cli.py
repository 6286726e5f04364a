# cli.py - interactive admin console for the storefront API
import os
import sys
from datetime import datetime
from typing import List, Dict, Any, Optional

import requests
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.prompt import IntPrompt, Confirm, Prompt
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich import box

from prompt_toolkit import prompt
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.styles import Style as PromptStyle

from sdk.storefront_client import StoreClient
from storefront.logs import configure_logging

console = Console()
c = StoreClient(base_url=os.getenv("STORE_URL", "http://127.0.0.1:3000"))

status_message = "Ready"
product_cache: List[Dict[str, Any]] = []

custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
})


def _error_text(e: Exception) -> str:
    """Prefer the API's {"message": ...} body over the raw HTTP error."""
    if isinstance(e, requests.exceptions.HTTPError) and e.response is not None:
        try:
            return e.response.json().get("message") or str(e)
        except ValueError:
            return f"HTTP {e.response.status_code}"
    return str(e)


# ---------------------------
# Display helpers
# ---------------------------
def show_products(products: List[Dict[str, Any]]):
    if not products:
        console.print("[italic yellow]No products found[/italic yellow]")
        return

    table = Table(title="📦 Products", box=box.ROUNDED, header_style="bold cyan",
                  title_style="bold magenta", show_lines=True)
    table.add_column("ID", justify="right", style="dim", width=6)
    table.add_column("Name", style="bold", width=24)
    table.add_column("Price", justify="right", width=10)
    table.add_column("Category", width=15)
    table.add_column("Description", width=30)

    for p in products:
        table.add_row(
            str(p.get("id", "?")),
            p.get("name", "N/A"),
            f"{float(p.get('price', 0)):.2f}",
            p.get("category") or "-",
            p.get("description") or "",
        )
    console.print(table)


def show_users(users: List[Dict[str, Any]]):
    if not users:
        console.print("[italic yellow]No users found[/italic yellow]")
        return
    table = Table(title="👥 Users", box=box.ROUNDED, header_style="bold yellow", show_lines=True)
    table.add_column("ID", justify="right", width=6)
    table.add_column("Name", width=20)
    table.add_column("Email", width=30)
    table.add_column("Role", width=8)
    table.add_column("Created", width=20)
    for u in users:
        role = u.get("role", "user")
        style = "red" if role == "admin" else "green"
        table.add_row(str(u.get("id")), u.get("name", ""), u.get("email", ""),
                      f"[{style}]{role}[/{style}]", (u.get("createdAt") or "")[:19])
    console.print(table)


def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


# ---------------------------
# API wrapper
# ---------------------------
def try_api(fn, *args, success_msg: Optional[str] = None, **kwargs):
    """
    Calls fn(*args, **kwargs) behind a spinner.
    Returns the result, or None after printing the error.
    """
    global status_message
    try:
        with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), transient=True) as progress:
            progress.add_task(description="Processing...", total=None)
            result = fn(*args, **kwargs)
        if success_msg:
            status_message = success_msg
            console.print(show_status(success_msg, True))
        return result
    except requests.exceptions.RequestException as e:
        status_message = f"Error: {_error_text(e)}"
        console.print(show_status(status_message, False))
        return None


def get_product_completer():
    global product_cache
    if not product_cache:
        product_cache = try_api(c.list_products) or []
    ids = [str(p.get("id", "")) for p in product_cache]
    return WordCompleter([i for i in ids if i], ignore_case=True)


def get_category_completer():
    categories = {p.get("category", "") for p in product_cache}
    return WordCompleter(sorted(x for x in categories if x), ignore_case=True)


def prompt_with_autocomplete(message: str, completer=None, default: str = ""):
    return prompt(f"{message} ", completer=completer, style=custom_style, default=default)


def ask_float(message: str, default: float = 10.0) -> float:
    while True:
        raw = Prompt.ask(message, default=str(default))
        try:
            return float(raw)
        except ValueError:
            console.print("[red]Please enter a valid number.[/red]")


def create_header():
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)
    who = f"{c.user['name']} ({c.user['role']})" if c.user else "not logged in"
    header.add_row(
        "🛍️ Storefront Admin",
        f"[bold blue]{c.base_url}[/bold blue] · {who}",
        f"[dim]{datetime.now().strftime('%Y-%m-%d %H:%M:%S')}[/dim]",
    )
    return Panel(header, style="bold blue")


# ---------------------------
# Actions
# ---------------------------
def do_login():
    email = prompt_with_autocomplete("Email")
    password = prompt("Password ", is_password=True)
    resp = try_api(c.login, email, password, success_msg=f"Logged in as {email}")
    if resp and resp["user"]["role"] != "admin":
        console.print("[yellow]This account is not an admin; admin actions will be refused.[/yellow]")


def do_add_product():
    global product_cache
    name = prompt_with_autocomplete("Product name")
    price = ask_float("💰 Price", default=10.0)
    category = prompt_with_autocomplete("🏷️ Category", completer=get_category_completer(), default="general")
    description = prompt_with_autocomplete("Description (optional)") or None
    image = prompt_with_autocomplete("Image path/URL (optional)") or None
    resp = try_api(c.add_product, name, price, category, description, image,
                   success_msg=f"Product '{name}' added")
    if resp:
        show_products([resp["product"]])
        product_cache = try_api(c.list_products) or []


def do_update_product():
    global product_cache
    pid = IntPrompt.ask("Product ID")
    current = try_api(c.get_product, pid)
    if not current:
        return
    changes = {}
    name = prompt_with_autocomplete("Name", default=current.get("name", ""))
    if name != current.get("name"):
        changes["name"] = name
    price = ask_float("Price", default=current.get("price", 0))
    if price != current.get("price"):
        changes["price"] = price
    category = prompt_with_autocomplete("Category", completer=get_category_completer(),
                                        default=current.get("category", ""))
    if category != current.get("category"):
        changes["category"] = category
    if not changes:
        console.print("[dim]Nothing changed[/dim]")
        return
    resp = try_api(c.update_product, pid, success_msg=f"Product {pid} updated", **changes)
    if resp:
        show_products([resp["product"]])
        product_cache = try_api(c.list_products) or []


def do_delete_product():
    global product_cache
    pid = prompt_with_autocomplete("Product ID to delete", completer=get_product_completer()).strip()
    if not pid.isdigit():
        console.print("[red]Product ID must be a number[/red]")
        return
    if Confirm.ask(f"[red]Delete product {pid}?[/red]"):
        try_api(c.delete_product, int(pid), success_msg=f"Product {pid} deleted")
        product_cache = try_api(c.list_products) or []


# ---------------------------
# Main menu
# ---------------------------
def menu():
    global product_cache

    console.clear()
    console.print(create_header())
    product_cache = try_api(c.list_products) or []

    while True:
        menu_table = Table.grid(padding=(0, 2))
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        options = [
            ("1", "🔑 Login", "5", "✏️ Update product"),
            ("2", "📦 List products", "6", "🗑️ Delete product"),
            ("3", "🔍 Search products", "7", "👥 List users"),
            ("4", "➕ Add product", "8", "🚪 Logout"),
            ("", "", "q", "👋 Quit"),
        ]
        for row in options:
            menu_table.add_row(*row)
        console.print(Panel(menu_table, title="📋 Menu", border_style="yellow"))

        choice = prompt_with_autocomplete(
            "\nChoose an option",
            completer=WordCompleter([str(i) for i in range(1, 9)] + ["q", "quit", "exit"]),
        ).strip()

        if choice == "1":
            do_login()
            console.print(create_header())

        elif choice == "2":
            category = prompt_with_autocomplete("Category (blank for all)", completer=get_category_completer()).strip()
            products = try_api(c.list_products, category or None, success_msg="Products loaded")
            if products is not None:
                if not category:
                    product_cache = products
                show_products(products)

        elif choice == "3":
            term = prompt_with_autocomplete("Search term")
            show_products(try_api(c.search_products, term) or [])

        elif choice == "4":
            do_add_product()

        elif choice == "5":
            do_update_product()

        elif choice == "6":
            do_delete_product()

        elif choice == "7":
            users = try_api(c.list_users, success_msg="Users loaded")
            if users is not None:
                show_users(users)

        elif choice == "8":
            try_api(c.logout, success_msg="Logged out")
            console.print(create_header())

        elif choice.lower() in ("q", "quit", "exit"):
            if Confirm.ask("Are you sure you want to quit?"):
                console.print(Panel.fit("[bold green]Bye! 👋[/bold green]", title="Goodbye"))
                sys.exit(0)

        console.print()
        console.rule(style="dim")


if __name__ == "__main__":
    configure_logging(os.getenv("LOG_LEVEL", "WARNING"), console=console)
    try:
        menu()
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
