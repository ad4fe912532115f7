"""CLI interface for TaskNest."""

import asyncio
from datetime import date
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from tasknest.client.api import ApiClient, ApiError
from tasknest.client.store import TodoStore
from tasknest.config import configure_logging, get_settings
from tasknest.schemas.todo import TodoResponse

app = typer.Typer(
    name="tasknest",
    help="TaskNest - nested todo lists from the terminal.",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log HTTP details")):
    """Configure logging for every command."""
    configure_logging("DEBUG" if verbose else "WARNING")


def run_async(coro):
    """Run async function in sync context."""
    return asyncio.run(coro)


def load_token() -> str | None:
    path = get_settings().token_file
    if path.exists():
        return path.read_text().strip() or None
    return None


def save_token(token: str | None) -> None:
    path = get_settings().token_file
    if token is None:
        path.unlink(missing_ok=True)
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(token)
    path.chmod(0o600)


def open_store() -> TodoStore:
    token = load_token()
    if token is None:
        console.print("[red]Not logged in.[/red] Run `tasknest login` first.")
        raise typer.Exit(1)
    return TodoStore(ApiClient(get_settings().api_url, token=token))


async def with_store(action):
    """Load todos and tags, run ``action(store)``, report API errors."""
    store = open_store()
    try:
        await store.refresh()
        await store.refresh_tags()
        return await action(store)
    except ApiError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)
    finally:
        await store.api.aclose()


def resolve_id(store: TodoStore, prefix: str) -> str:
    """Expand an abbreviated todo id to the one todo it identifies."""
    matches = []
    stack = list(store.todos)
    while stack:
        todo = stack.pop()
        if todo.id.startswith(prefix):
            matches.append(todo.id)
        stack.extend(todo.children)
    if not matches:
        console.print(f"[red]Todo not found: {prefix}[/red]")
        raise typer.Exit(1)
    if len(matches) > 1:
        console.print(f"[red]Ambiguous id: {prefix}[/red]")
        raise typer.Exit(1)
    return matches[0]


async def resolve_tags(store: TodoStore, names: list[str]) -> list[str]:
    """Map tag names to ids; creating a tag that exists returns the existing one."""
    ids = []
    for name in names:
        tag = await store.api.create_tag(name.strip())
        ids.append(tag.id)
    return ids


def add_branch(parent: Tree, todo: TodoResponse) -> None:
    title = todo.title
    if todo.is_completed:
        title = f"[strike dim]{title}[/strike dim]"
    tags = " ".join(f"[{tag.color}]#{tag.name}[/{tag.color}]" for tag in todo.tags)
    branch = parent.add(f"[dim]{todo.id[:8]}[/dim] {title} {tags}".rstrip())
    for child in todo.children:
        add_branch(branch, child)


def _credentials_command(action: str, email: str, password: str, name: str | None = None):
    async def _run():
        async with ApiClient(get_settings().api_url) as api:
            try:
                if action == "register":
                    auth = await api.register(email, password, name or email.split("@")[0])
                else:
                    auth = await api.login(email, password)
            except ApiError as e:
                console.print(f"[red]{e.message}[/red]")
                raise typer.Exit(1)
        save_token(auth.token)
        console.print(f"[green]Signed in as[/green] {auth.user.name} <{auth.user.email}>")

    run_async(_run())


@app.command()
def register(
    email: str = typer.Argument(..., help="Email address"),
    name: str = typer.Option(None, "--name", "-n", help="Display name"),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
):
    """Create an account and sign in."""
    _credentials_command("register", email, password, name)


@app.command()
def login(
    email: str = typer.Argument(..., help="Email address"),
    password: str = typer.Option(..., prompt=True, hide_input=True),
):
    """Sign in and remember the token."""
    _credentials_command("login", email, password)


@app.command()
def logout():
    """Forget the stored token."""
    save_token(None)
    console.print("Signed out.")


@app.command("list")
def list_todos(
    completed: bool = typer.Option(False, "--completed", "-c", help="Show completed todos"),
    query: Optional[str] = typer.Option(None, "--search", "-s", help="Search text (2+ characters)"),
    tags: Optional[list[str]] = typer.Option(None, "--tag", "-t", help="Only todos with this tag"),
):
    """List todos."""

    async def _list(store: TodoStore):
        tag_ids = [t.id for t in store.tags if tags and t.name in tags]
        view = store.view(query=query, tag_ids=tag_ids)

        if completed:
            if not view.completed:
                console.print("[dim]No completed todos yet.[/dim]")
            for day, items in view.completed:
                tree = Tree(f"[bold]{day.strftime('%A, %d %B %Y')}[/bold]")
                for todo in items:
                    add_branch(tree, todo)
                console.print(tree)
            return

        if not view.open_count:
            console.print("[dim]No open todos. Create one to get started![/dim]")
            return
        for label, items in (("Priority", view.priority), ("Todos", view.regular)):
            if not items:
                continue
            tree = Tree(f"[bold]{label}[/bold] ({len(items)})")
            for todo in items:
                add_branch(tree, todo)
            console.print(tree)

    run_async(with_store(_list))


@app.command()
def add(
    title: str = typer.Argument(..., help="Todo title"),
    description: str = typer.Option(None, "--desc", "-d", help="Description"),
    parent: Optional[str] = typer.Option(None, "--parent", help="Parent todo ID for a sub-todo"),
    tags: Optional[list[str]] = typer.Option(None, "--tag", "-t", help="Tag name (repeatable)"),
):
    """Add a new todo."""

    async def _add(store: TodoStore):
        parent_id = resolve_id(store, parent) if parent else None
        tag_ids = await resolve_tags(store, tags or [])
        todo = await store.create(title, description, parent_id, tag_ids)
        console.print(Panel(
            f"[green]Created:[/green] {todo.title}\n"
            f"[dim]ID: {todo.id}[/dim]",
            title="Todo Added",
        ))

    run_async(with_store(_add))


@app.command()
def edit(
    todo_id: str = typer.Argument(..., help="Todo ID (or partial ID)"),
    title: Optional[str] = typer.Option(None, "--title", help="New title"),
    description: Optional[str] = typer.Option(None, "--desc", "-d", help="New description"),
    tags: Optional[list[str]] = typer.Option(None, "--tag", "-t", help="Replace tags (repeatable)"),
):
    """Edit a todo."""

    async def _edit(store: TodoStore):
        session = store.begin_edit(resolve_id(store, todo_id))
        tag_ids = await resolve_tags(store, tags) if tags else None
        todo = await store.commit_edit(session, title, description, tag_ids)
        console.print(f"[green]Updated:[/green] {todo.title}")

    run_async(with_store(_edit))


@app.command()
def done(
    todo_id: str = typer.Argument(..., help="Todo ID (or partial ID)"),
):
    """Toggle a todo between open and completed."""

    async def _done(store: TodoStore):
        todo = await store.toggle(resolve_id(store, todo_id))
        state = "[green]Completed:[/green]" if todo.is_completed else "[yellow]Reopened:[/yellow]"
        console.print(f"{state} {todo.title}")

    run_async(with_store(_done))


@app.command()
def priority(
    todo_id: str = typer.Argument(..., help="Todo ID (or partial ID)"),
    off: bool = typer.Option(False, "--off", help="Clear the priority flag"),
):
    """Flag a root todo as priority."""

    async def _priority(store: TodoStore):
        todo = await store.set_priority(resolve_id(store, todo_id), not off)
        console.print(f"{'Prioritized' if todo.is_priority else 'Deprioritized'}: {todo.title}")

    run_async(with_store(_priority))


@app.command()
def move(
    todo_id: str = typer.Argument(..., help="Todo ID (or partial ID)"),
    position: int = typer.Argument(..., min=1, help="New position, starting at 1"),
):
    """Move an open root todo within its group."""

    async def _move(store: TodoStore):
        try:
            await store.move(resolve_id(store, todo_id), position - 1)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
        console.print("[green]Order updated.[/green]")

    run_async(with_store(_move))


@app.command()
def delete(
    todo_id: str = typer.Argument(..., help="Todo ID (or partial ID)"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
):
    """Delete a todo and its sub-todos."""

    async def _delete(store: TodoStore):
        todo = store.find(resolve_id(store, todo_id))
        if not force and not typer.confirm(f"Delete '{todo.title}'?"):
            raise typer.Abort()
        count = await store.delete(todo.id)
        console.print(f"[red]Deleted:[/red] {todo.title} ({count} todos)")

    run_async(with_store(_delete))


@app.command("clear-completed")
def clear_completed(
    day: Optional[str] = typer.Option(None, "--date", help="Only todos completed on YYYY-MM-DD"),
):
    """Delete completed todos."""
    target = None
    if day:
        try:
            target = date.fromisoformat(day)
        except ValueError:
            console.print(f"[red]Invalid date format: {day}[/red]")
            raise typer.Exit(1)

    async def _clear(store: TodoStore):
        count = await store.delete_completed(target)
        console.print(f"Deleted {count} todos.")

    run_async(with_store(_clear))


@app.command()
def tags():
    """List all tags."""

    async def _tags(store: TodoStore):
        if not store.tags:
            console.print("[dim]No tags found.[/dim]")
            return

        table = Table(title="Tags")
        table.add_column("ID", style="dim", width=8)
        table.add_column("Name", style="bold")
        table.add_column("Color")

        for tag in store.tags:
            table.add_row(tag.id[:8], tag.name, f"[{tag.color}]{tag.color}[/{tag.color}]")

        console.print(table)

    run_async(with_store(_tags))


@app.command("tag-delete")
def tag_delete(
    name: str = typer.Argument(..., help="Tag name"),
):
    """Delete a tag and remove it from every todo."""

    async def _tag_delete(store: TodoStore):
        tag = next((t for t in store.tags if t.name == name), None)
        if tag is None:
            console.print(f"[red]Tag not found: {name}[/red]")
            raise typer.Exit(1)
        await store.delete_tag(tag.id)
        console.print(f"[red]Deleted tag:[/red] {name}")

    run_async(with_store(_tag_delete))


@app.command()
def server(
    host: str = typer.Option("0.0.0.0", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
):
    """Start the API server."""
    import uvicorn

    console.print(f"[green]Starting TaskNest server at http://{host}:{port}[/green]")
    console.print("[dim]Press Ctrl+C to stop[/dim]")

    uvicorn.run(
        "tasknest.main:app",
        host=host,
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    app()
