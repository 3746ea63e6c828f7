"""
Command-line interface for mdserver.

This module provides CLI commands including:
- serve: Run the HTTP server
- tree: Print the markdown directory tree
- search: Search file and directory names
- render: Render one markdown file to HTML (or print its table of contents)
- clear-cache: Ask a running server to drop its caches
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import List, Optional

import click
import httpx

from mdserver.config.server_config import ServerConfig
from mdserver.exceptions import MarkdownServerException
from mdserver.factories.server_factory import ServerComponents, ServerFactory
from mdserver.scanner.models import DirectoryNode, TreeNode
from mdserver.settings import get_settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

root_option = click.option(
    '--root', '-r',
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help='Markdown root directory (default: ROOT_PATH from config)'
)


def build_components(root: Optional[Path]) -> ServerComponents:
    """Build components from settings, optionally overriding the root."""
    settings = get_settings()
    if root is not None:
        settings = settings.model_copy(update={"root_path": str(root)})
    return ServerFactory().create(ServerConfig.from_settings(settings))


def format_tree(nodes: List[TreeNode], indent: int = 0) -> List[str]:
    """Render tree nodes as indented text lines."""
    lines = []
    for node in nodes:
        prefix = "  " * indent
        if isinstance(node, DirectoryNode):
            marker = "" if node.has_markdown else " (empty)"
            lines.append(f"{prefix}{node.name}/{marker}")
            lines.extend(format_tree(node.children, indent + 1))
        else:
            lines.append(f"{prefix}{node.name} ({node.size} B)")
    return lines


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
def cli(verbose: bool):
    """
    mdserver CLI.

    Browse, search and render a directory of markdown files.
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Verbose logging enabled")


@cli.command('serve')
@click.option('--host', default=None, help='Bind address (default: HOST from config)')
@click.option('--port', '-p', type=int, default=None, help='Listen port (default: PORT from config)')
@root_option
@click.option('--watch/--no-watch', default=None, help='Start the file watcher on startup')
@click.option('--reload', is_flag=True, help='Auto-reload the server on code changes')
def serve_command(
    host: Optional[str],
    port: Optional[int],
    root: Optional[Path],
    watch: Optional[bool],
    reload: bool,
):
    """
    Run the HTTP server.

    Examples:

        \b
        # Serve ./docs on the configured port
        mdserver serve -r ./docs

        \b
        # Serve with live reload of markdown changes
        mdserver serve -r ./docs --watch
    """
    import uvicorn

    # Settings are read from the environment by the server process
    if root is not None:
        os.environ["ROOT_PATH"] = str(root.resolve())
    if watch is not None:
        os.environ["WATCH_ENABLED"] = "true" if watch else "false"
    get_settings.cache_clear()
    settings = get_settings()

    click.echo(f"Serving {settings.root} on http://{host or settings.host}:{port or settings.port}")
    uvicorn.run(
        "mdserver.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@cli.command('tree')
@root_option
@click.option('--json', 'as_json', is_flag=True, help='Output as JSON')
def tree_command(root: Optional[Path], as_json: bool):
    """Print the markdown directory tree."""
    components = build_components(root)
    tree = asyncio.run(components.scanner.get_tree())

    if as_json:
        click.echo(json.dumps(
            [node.model_dump(mode="json", by_alias=True) for node in tree],
            indent=2,
        ))
        return

    click.echo(f"{components.scanner.root_path}")
    for line in format_tree(tree, indent=1):
        click.echo(line)


@cli.command('search')
@click.argument('query')
@root_option
@click.option('--json', 'as_json', is_flag=True, help='Output as JSON')
def search_command(query: str, root: Optional[Path], as_json: bool):
    """Search file and directory names for QUERY."""
    if len(query.strip()) < 2:
        raise click.BadParameter("Search query must be at least 2 characters long", param_hint="QUERY")

    components = build_components(root)
    results = asyncio.run(components.scanner.search(query))

    if as_json:
        click.echo(json.dumps([result.model_dump(by_alias=True) for result in results], indent=2))
        return

    if not results:
        click.echo("No matches.")
        return
    for result in results:
        suffix = "/" if result.type == "directory" else ""
        click.echo(f"{result.path}{suffix}")
    click.echo(click.style(f"{len(results)} match(es)", fg='green'))


@cli.command('render')
@click.argument('path')
@root_option
@click.option('--toc', is_flag=True, help='Print the table of contents instead of HTML')
def render_command(path: str, root: Optional[Path], toc: bool):
    """Render the markdown file at PATH (relative to the root)."""
    components = build_components(root)
    renderer = components.renderer

    try:
        html = asyncio.run(renderer.render_file(path))
    except MarkdownServerException as e:
        click.echo(click.style(f"Error: {e.message}", fg='red'), err=True)
        raise SystemExit(1)

    if not toc:
        click.echo(html)
        return

    for entry in renderer.extract_table_of_contents(html):
        click.echo(f"{'  ' * (entry.level - 1)}- {entry.text} (#{entry.id})")


@cli.command('clear-cache')
@click.option(
    '--url',
    default=None,
    help='Base URL of the running server (default: http://localhost:PORT)'
)
@click.option(
    '--force', '-f',
    is_flag=True,
    help='Skip confirmation prompt'
)
def clear_cache_command(url: Optional[str], force: bool):
    """
    Clear all caches of a running server.

    Sends POST /api/cache/clear to the server.
    """
    base_url = url or f"http://localhost:{get_settings().port}"

    if not force:
        click.confirm(f"Clear all caches on {base_url}?", abort=True)

    try:
        response = httpx.post(f"{base_url.rstrip('/')}/api/cache/clear", timeout=10)
        response.raise_for_status()
    except httpx.HTTPError as e:
        click.echo(click.style(f"Error clearing cache: {e}", fg='red'), err=True)
        logger.debug("Cache clear request failed", exc_info=True)
        raise SystemExit(1)

    cleared = (response.json().get("data") or {}).get("cleared", {})
    click.echo(click.style("Cache cleared successfully", fg='green'))
    for name, count in cleared.items():
        click.echo(f"  {name}: {count} entries")


def main():
    """Entry point for the mdserver console script."""
    cli()


if __name__ == '__main__':
    main()
