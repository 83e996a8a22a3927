"""mind CLI — thought graph backed by one file per neuron and per edge.

Commands:
    mind init [NAME]                create mind.toml + storage root
    mind category NAME              create a category (--parent animals)
    mind add [LABEL]                create a neuron (-c CATEGORY, -l LINK, -e EMOTION)
    mind link SOURCE TARGET         add an edge
    mind unlink SOURCE TARGET       remove the first edge to TARGET
    mind move NEURON [CATEGORY]     relocate (no CATEGORY = uncategorized)
    mind show NEURON                a neuron and its outgoing edges
    mind ls [CATEGORY]              neurons under a category (-r for recursive)
    mind rm NEURON                  destroy a neuron
    mind strengthen EDGE            raise an edge's weight by one step
    mind weaken EDGE                lower an edge's weight by one step
    mind repair                     remove dangling references (--dry-run to only report)
    mind status                     store stats and consistency

Neurons are named by category chain and label: ``animals/dog`` is
``neurons/animals/dog.nrn``; an uncategorized neuron with id 7 is ``7``.
Root-relative storage paths (``neurons/animals/dog.nrn``) work too.
"""

from __future__ import annotations

import functools
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any, TypeVar

import click

from mindstore.category import Category
from mindstore.config import MindConfig, init_config, load_config
from mindstore.errors import MindStoreError
from mindstore.neuron import Neuron
from mindstore.paths import NEURONS_DIRNAME, PATHWAYS_DIRNAME, EntityKind
from mindstore.repair import check, scan_and_repair

if TYPE_CHECKING:
    from collections.abc import Callable

    from mindstore.pathway import NeuralPathway
    from mindstore.store import MindStore

F = TypeVar("F", bound="Callable[..., Any]")

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_cfg() -> MindConfig:
    try:
        return load_config()
    except Exception as exc:
        raise click.ClickException(str(exc)) from exc


def _open_store() -> MindStore:
    cfg = _load_cfg()
    ctx = click.get_current_context()
    cfg.configure_logging(verbose=bool(ctx.find_root().params.get("verbose")))
    return cfg.open_store()


def _store_errors(fn: F) -> F:
    """Turn store errors into clean CLI failures."""

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except MindStoreError as exc:
            raise click.ClickException(str(exc)) from exc

    return wrapper  # type: ignore[return-value]


def _neuron_path(ref: str) -> str:
    if ref.endswith(f".{EntityKind.NEURON.value}"):
        return ref if ref.startswith(f"{NEURONS_DIRNAME}/") else f"{NEURONS_DIRNAME}/{ref}"
    return str(PurePosixPath(NEURONS_DIRNAME, f"{ref.strip('/')}.{EntityKind.NEURON.value}"))


def _pathway_path(ref: str) -> str:
    if not ref.endswith(f".{EntityKind.PATHWAY.value}"):
        ref = f"{ref}.{EntityKind.PATHWAY.value}"
    return ref if ref.startswith(f"{PATHWAYS_DIRNAME}/") else f"{PATHWAYS_DIRNAME}/{ref}"


def _category(store: MindStore, ref: str | None) -> Category | None:
    if not ref:
        return None
    ref = ref.strip("/")
    if ref.startswith(f"{NEURONS_DIRNAME}/"):
        return store.category(ref)
    return store.category_at(*ref.split("/"))


def _describe(neuron: Neuron) -> str:
    bits = [neuron.storage_path]
    if neuron.emotion_tag:
        bits.append(f"emotion={neuron.emotion_tag}")
    bits.append(f"edges={len(neuron.outgoing_edges)}")
    return "  ".join(bits)


def _describe_edge(pathway: NeuralPathway) -> str:
    return f"{pathway.storage_path} -> {pathway.target}  weight={pathway.weight:g}"


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="mindstore")
@click.option("--verbose", "-v", is_flag=True, help="Log store activity to stderr")
def cli(verbose: bool) -> None:  # noqa: ARG001
    """mind — file-backed thought graph."""


# ---------------------------------------------------------------------------
# mind init
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("name", required=False)
@click.option("--dir", "root", default=".", show_default=True, help="Project root")
def init(name: str | None, root: str) -> None:
    """Create mind.toml and the storage root in the current project."""
    root_path = Path(root).resolve()
    try:
        config_path = init_config(root_path, name=name)
        click.echo(f"Created {config_path}")
    except FileExistsError:
        click.echo("mind.toml already exists — skipping init")

    cfg = load_config(root_path)
    store = cfg.open_store()
    click.echo(f"Storage : {store.root}")


# ---------------------------------------------------------------------------
# mind category / add / rm / move
# ---------------------------------------------------------------------------


@cli.command("category")
@click.argument("name")
@click.option("--parent", "-p", default=None, help="Enclosing category, e.g. animals/mammals")
@_store_errors
def category_cmd(name: str, parent: str | None) -> None:
    """Create a category."""
    store = _open_store()
    category = Category.create(store, name, _category(store, parent))
    click.echo(category.storage_path)


@cli.command()
@click.argument("label", required=False)
@click.option("--category", "-c", default=None, help="Category to file the neuron in")
@click.option("--link", "-l", default=None, help="Existing neuron to link to")
@click.option("--emotion", "-e", default=None, help="Emotion tag, e.g. joy")
@_store_errors
def add(label: str | None, category: str | None, link: str | None, emotion: str | None) -> None:
    """Create a neuron (named by LABEL, or by the next id)."""
    store = _open_store()
    linked = store.neuron(_neuron_path(link)) if link else None
    neuron = Neuron.create(
        store,
        linked_neuron=linked,
        emotion=emotion,
        label=label,
        category=_category(store, category),
    )
    click.echo(neuron.storage_path)


@cli.command()
@click.argument("neuron")
@_store_errors
def rm(neuron: str) -> None:
    """Destroy a neuron. Edges pointing at it remain until `mind repair`."""
    store = _open_store()
    target = store.neuron(_neuron_path(neuron))
    target.destroy()
    click.echo(f"Destroyed {target.storage_path}")


@cli.command()
@click.argument("neuron")
@click.argument("category", required=False)
@_store_errors
def move(neuron: str, category: str | None) -> None:
    """Relocate NEURON into CATEGORY (omit CATEGORY to uncategorize)."""
    store = _open_store()
    target = store.neuron(_neuron_path(neuron))
    old = target.storage_path
    target.relocate(_category(store, category))
    if target.storage_path == old:
        click.echo(f"{old} already in place")
    else:
        click.echo(f"Moved {old} -> {target.storage_path}")


# ---------------------------------------------------------------------------
# mind link / unlink / strengthen / weaken
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("source")
@click.argument("target")
@_store_errors
def link(source: str, target: str) -> None:
    """Add an edge from SOURCE to TARGET."""
    store = _open_store()
    src = store.neuron(_neuron_path(source))
    pathway = src.add_edge(store.neuron(_neuron_path(target)))
    click.echo(pathway.storage_path)


@cli.command()
@click.argument("source")
@click.argument("target")
@_store_errors
def unlink(source: str, target: str) -> None:
    """Remove the first edge from SOURCE to TARGET."""
    store = _open_store()
    src = store.neuron(_neuron_path(source))
    removed = src.remove_edge(store.neuron(_neuron_path(target)))
    if removed is None:
        click.echo("No such edge")
    else:
        click.echo(f"Removed {removed.storage_path}")


@cli.command()
@click.argument("edge")
@_store_errors
def strengthen(edge: str) -> None:
    """Raise an edge's weight by one step."""
    store = _open_store()
    pathway = store.pathway(_pathway_path(edge))
    pathway.increase_weight()
    click.echo(_describe_edge(pathway))


@cli.command()
@click.argument("edge")
@_store_errors
def weaken(edge: str) -> None:
    """Lower an edge's weight by one step (never below the step)."""
    store = _open_store()
    pathway = store.pathway(_pathway_path(edge))
    pathway.decrease_weight()
    click.echo(_describe_edge(pathway))


# ---------------------------------------------------------------------------
# mind show / ls
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("neuron")
@_store_errors
def show(neuron: str) -> None:
    """Show a neuron and its outgoing edges."""
    store = _open_store()
    n = store.neuron(_neuron_path(neuron))
    click.echo(f"# {n.morpheme or n.id_or_name}  {_describe(n)}")
    click.echo(f"  category: {n.parent_category or '-'}")
    for pathway in n.pathways():
        broken = "" if store.exists(pathway.target) else "  ⚠ broken"
        click.echo(f"  {_describe_edge(pathway)}{broken}")


@cli.command("ls")
@click.argument("category", required=False)
@click.option("--recursive", "-r", is_flag=True, help="Include sub-categories")
@_store_errors
def ls_cmd(category: str | None, recursive: bool) -> None:
    """List neurons under CATEGORY (default: uncategorized neurons)."""
    store = _open_store()
    cat = _category(store, category)
    if cat is None:
        neurons = store.iter_neurons(recursive=recursive)
    else:
        neurons = cat.list_descendant_neurons(recursive=recursive)
    count = 0
    for n in neurons:
        click.echo(_describe(n))
        count += 1
    if cat is not None:
        for sub in cat.subcategories():
            click.echo(f"{sub.storage_path}/")
    click.echo(f"[{count} neuron(s)]")


# ---------------------------------------------------------------------------
# mind repair
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--dry-run", is_flag=True, help="Only report what would be repaired")
@_store_errors
def repair(dry_run: bool) -> None:
    """Remove edges to destroyed neurons and other dangling references."""
    store = _open_store()
    report = check(store) if dry_run else scan_and_repair(store)
    if report.clean:
        click.echo("Store is consistent")
        return
    click.echo(report.summary())
    for edge, target in report.broken_edges:
        click.echo(f"  broken  {edge} -> {target}")
    for path in report.orphan_edges:
        click.echo(f"  orphan  {path}")
    for owner, edge in report.missing_edges:
        click.echo(f"  missing {owner}: {edge}")
    for cat, child in report.stale_children:
        click.echo(f"  stale   {cat}: {child}")
    for cat, child in report.unlisted_children:
        click.echo(f"  listed  {cat}: {child}")
    for path in report.unreadable:
        click.echo(f"  unreadable {path}", err=True)


@cli.command()
@_store_errors
def status() -> None:
    """Show store stats and whether the store needs repair."""
    from rich.console import Console
    from rich.table import Table

    cfg = _load_cfg()
    store = _open_store()
    console = Console()

    table = Table(title=f"mind — {cfg.name}", show_header=True, header_style="bold")
    table.add_column("Metric", style="dim", no_wrap=True)
    table.add_column("Value", justify="right")

    table.add_row("Config", str(cfg.config_path))
    table.add_row("Storage", str(store.root))
    table.add_row("", "")

    stats = store.stats()
    table.add_row("Neurons", str(stats["neurons"]))
    table.add_row("Pathways", str(stats["pathways"]))
    table.add_row("Categories", str(stats["categories"]))
    table.add_row("", "")

    report = check(store)
    table.add_row("Consistent", "[green]yes[/green]" if report.clean else "[yellow]no — run mind repair[/yellow]")
    console.print(table)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()

