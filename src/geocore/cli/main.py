"""geocore CLI.

Developer commands for inspecting relations, checking validity and
exercising the spatial index.
"""

from __future__ import annotations

import json
import math
import time
from typing import Annotated, Any, NoReturn

import numpy as np
import typer

from geocore import __version__
from geocore.exceptions import GeoCoreError, GeometryKindError
from geocore.geometry.model import Geometry, GeometryKind, construct
from geocore.geometry.validators import validity_reason
from geocore.index.rtree import SpatialIndex
from geocore.relate import predicates
from geocore.utils.logging import configure_logging, get_logger

app = typer.Typer(
    name="geocore",
    help="geocore: geometry model, DE-9IM relate engine and R*-tree index",
    add_completion=False,
)

_PREDICATES = (
    "intersects",
    "disjoint",
    "touches",
    "crosses",
    "within",
    "contains",
    "covers",
    "covered_by",
    "overlaps",
    "equals",
)

VerboseOption = Annotated[
    int,
    typer.Option("--verbose", "-v", count=True, help="Increase verbosity (-v, -vv)"),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON")]


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version(json_output: JsonOption = False) -> None:
    """Show version information."""
    if json_output:
        typer.echo(json.dumps({"version": __version__}))
    else:
        typer.echo(f"geocore {__version__}")


@app.command()
def relate(
    first: Annotated[str, typer.Argument(help='Geometry A as {"kind": ..., "coordinates": ...}')],
    second: Annotated[str, typer.Argument(help="Geometry B in the same form")],
    verbose: VerboseOption = 0,
    json_output: JsonOption = False,
) -> None:
    """Print the DE-9IM matrix and named predicates for two geometries."""
    _configure_logging(verbose)
    try:
        a = parse_geometry(first)
        b = parse_geometry(second)
        matrix = predicates.relate(a, b)
        results = {name: getattr(predicates, name)(a, b) for name in _PREDICATES}
    except GeoCoreError as e:
        _fail(e, json_output)

    if json_output:
        typer.echo(json.dumps({"matrix": matrix.to_string(), "predicates": results}, indent=2))
        return
    typer.echo(f"DE-9IM: {matrix}")
    for name, value in results.items():
        typer.echo(f"  {name:<11} {value}")


@app.command()
def validate(
    geometry: Annotated[str, typer.Argument(help='Geometry as {"kind": ..., "coordinates": ...}')],
    verbose: VerboseOption = 0,
    json_output: JsonOption = False,
) -> None:
    """Check a geometry against the validity rules."""
    _configure_logging(verbose)
    try:
        g = parse_geometry(geometry)
    except GeoCoreError as e:
        _fail(e, json_output)

    reason = validity_reason(g)
    if json_output:
        typer.echo(json.dumps({"valid": reason is None, "reason": reason}))
    elif reason is None:
        typer.echo(f"{g.type_name}: valid")
    else:
        typer.echo(f"{g.type_name}: invalid ({reason})")
    raise typer.Exit(0 if reason is None else 1)


@app.command("bench-index")
def bench_index(
    count: Annotated[int, typer.Option("--count", "-n", min=1, help="Number of points")] = 100_000,
    k: Annotated[int, typer.Option("--k", min=1, help="Neighbours to query")] = 10,
    seed: Annotated[int, typer.Option("--seed", help="Random seed")] = 0,
    verbose: VerboseOption = 0,
    json_output: JsonOption = False,
) -> None:
    """Bulk-load random points and check KNN against a linear scan."""
    _configure_logging(verbose)
    logger = get_logger(__name__)

    rng = np.random.default_rng(seed)
    xy = rng.uniform(-1000.0, 1000.0, size=(count, 2))

    points = xy.tolist()

    index = SpatialIndex(name="bench")
    started = time.perf_counter()
    index.bulk_load((i, (x, y, x, y)) for i, (x, y) in enumerate(points))
    load_seconds = time.perf_counter() - started

    started = time.perf_counter()
    found = index.query_knn((0.0, 0.0), k)
    query_seconds = time.perf_counter() - started

    # Same distance function as the index so ties order identically.
    distances = np.array([math.hypot(x, y) for x, y in points])
    expected = np.argsort(distances, kind="stable")[:k].tolist()
    matches = found == expected
    logger.info("Index benchmark finished", count=count, k=k, matches=matches)

    summary = {
        "count": count,
        "k": k,
        "height": index.height,
        "load_seconds": round(load_seconds, 4),
        "query_seconds": round(query_seconds, 6),
        "matches_linear_scan": matches,
    }
    if json_output:
        typer.echo(json.dumps(summary, indent=2))
    else:
        typer.echo(f"Loaded {count} points in {load_seconds:.3f}s (height {index.height})")
        typer.echo(f"KNN k={k} in {query_seconds * 1000:.3f}ms")
        typer.echo(f"Matches linear scan: {matches}")
    raise typer.Exit(0 if matches else 1)


# =============================================================================
# Helpers
# =============================================================================


def parse_geometry(text: str) -> Geometry:
    """Parse a ``{"kind": ..., "coordinates": ...}`` JSON payload.

    GeometryCollections use ``"geometries"`` for their members. An optional
    ``"srid"`` applies to the whole payload.

    Raises:
        GeometryKindError: If the JSON is malformed or does not fit the kind.
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise GeometryKindError(f"Geometry is not valid JSON: {e.msg}") from e
    return _from_payload(payload, None)


def _from_payload(payload: Any, srid: int | None) -> Geometry:
    if not isinstance(payload, dict) or "kind" not in payload:
        raise GeometryKindError('Geometry payload must be an object with a "kind" key')
    kind = GeometryKind.parse(payload["kind"])
    srid = payload.get("srid", srid)
    if kind is GeometryKind.GEOMETRYCOLLECTION:
        members = [_from_payload(m, srid) for m in payload.get("geometries", [])]
        return construct(kind, members, srid)
    return construct(kind, payload.get("coordinates"), srid)


def _fail(error: Exception, json_output: bool) -> NoReturn:
    if json_output:
        typer.echo(json.dumps({"error": str(error)}))
    else:
        typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(1)


def _configure_logging(verbose: int) -> None:
    """Configure logging based on verbosity level."""
    if verbose == 0:
        level = "WARNING"
    elif verbose == 1:
        level = "INFO"
    else:  # verbose >= 2
        level = "DEBUG"

    configure_logging(level=level)


if __name__ == "__main__":
    app()
