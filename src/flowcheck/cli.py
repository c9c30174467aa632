"""CLI entry point: ``flowcheck validate``, ``score``, ``versions`` etc."""

from __future__ import annotations

# Singleton logging before any other flowcheck import logs
from flowcheck.logging_config import setup_logging

setup_logging()

import argparse  # noqa: E402
import asyncio  # noqa: E402
import json  # noqa: E402
import sys  # noqa: E402
from collections.abc import Awaitable, Callable  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import Any, NoReturn, TypeVar  # noqa: E402

import yaml  # noqa: E402
from pydantic import ValidationError  # noqa: E402

from flowcheck import __version__  # noqa: E402
from flowcheck.config import Settings, create_app_engine  # noqa: E402
from flowcheck.constants import (  # noqa: E402
    ProfileName,
    RecommendationThreshold,
)
from flowcheck.errors import FlowcheckError  # noqa: E402

T = TypeVar("T")


def main() -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args()

    if args.version:
        print(f"flowcheck {__version__}")
        return

    if args.command == "validate":
        _run_validate(args)
    elif args.command == "score":
        _run_score(args)
    elif args.command == "versions":
        _run_versions(args)
    elif args.command == "mcp":
        _run_mcp(args)
    elif args.command == "serve":
        _run_serve(args)
    else:
        parser.print_help()


def _add_db_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--db",
        default=None,
        help=(
            "Database path override "
            "(default: from settings)"
        ),
    )


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="flowcheck",
        description=(
            "Validate workflow node configurations and plan "
            "node version upgrades."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )

    sub = parser.add_subparsers(dest="command")

    validate = sub.add_parser(
        "validate",
        help="Validate node configurations from a JSON/YAML file",
    )
    validate.add_argument(
        "path",
        type=str,
        help=(
            "File holding {node_type, config, properties} "
            "or a list of them"
        ),
    )
    validate.add_argument(
        "--profile",
        "-p",
        choices=[p.value for p in ProfileName],
        default=None,
        help="Validation profile (default: from settings)",
    )

    score = sub.add_parser(
        "score",
        help="Score a field as a resource-locator candidate",
    )
    score.add_argument("field_name", help="Property name")
    score.add_argument("node_type", help="Owning node type")
    score.add_argument(
        "--value",
        default=None,
        help="Current field value (expressions allowed)",
    )
    score.add_argument(
        "--threshold",
        choices=[t.value for t in RecommendationThreshold],
        default=RecommendationThreshold.NORMAL.value,
        help="Recommendation threshold (default: normal)",
    )

    versions = sub.add_parser(
        "versions",
        help="Node version data and upgrade planning",
    )
    versions_sub = versions.add_subparsers(dest="versions_command")

    import_parser = versions_sub.add_parser(
        "import",
        help="Load version metadata from a JSON/YAML file",
    )
    import_parser.add_argument(
        "path",
        type=str,
        help="File holding a list of version metadata records",
    )
    _add_db_arg(import_parser)

    analyze = versions_sub.add_parser(
        "analyze",
        help="Check whether a node version is outdated",
    )
    analyze.add_argument("node_type", help="Node type")
    analyze.add_argument("current_version", help="Version in use")
    _add_db_arg(analyze)

    upgrade = versions_sub.add_parser(
        "upgrade-path",
        help="Plan an upgrade to the latest version",
    )
    upgrade.add_argument("node_type", help="Node type")
    upgrade.add_argument("current_version", help="Version in use")
    _add_db_arg(upgrade)

    mcp_parser = sub.add_parser(
        "mcp",
        help="Start MCP server",
    )
    _add_db_arg(mcp_parser)
    mcp_parser.add_argument(
        "--transport",
        "-t",
        choices=["stdio", "sse"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    mcp_parser.add_argument(
        "--host",
        default="0.0.0.0",
        help=(
            "Bind address for SSE transport "
            "(default: 0.0.0.0)"
        ),
    )
    mcp_parser.add_argument(
        "--port",
        type=int,
        default=8001,
        help="Port for SSE transport (default: 8001)",
    )

    serve = sub.add_parser(
        "serve",
        help="Start the HTTP API",
    )
    serve.add_argument(
        "--host",
        default="127.0.0.1",
        help="Bind address (default: 127.0.0.1)",
    )
    serve.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port (default: 8000)",
    )
    serve.add_argument(
        "--reload",
        action="store_true",
        help="Reload on code changes (development)",
    )

    return parser


def _fail(message: str) -> NoReturn:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _load_document(path_arg: str) -> Any:
    path = Path(path_arg)
    if not path.exists():
        _fail(f"{path} does not exist")
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        _fail(f"cannot parse {path}: {exc}")


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _run_validate(args: argparse.Namespace) -> None:
    """Execute the validate command."""
    from flowcheck.validation.config_validator import validate_batch

    document = _load_document(args.path)
    items = document if isinstance(document, list) else [document]
    triples = []
    for index, item in enumerate(items):
        if not isinstance(item, dict) or "node_type" not in item:
            _fail(f"item {index} needs a 'node_type' key")
        triples.append(
            (
                item["node_type"],
                item.get("config") or {},
                item.get("properties") or [],
            )
        )

    settings = Settings()
    try:
        results = validate_batch(
            triples, args.profile or settings.default_profile
        )
    except (TypeError, FlowcheckError) as exc:
        _fail(str(exc))

    _print_json([r.model_dump(mode="json") for r in results])
    if not all(r.valid for r in results):
        sys.exit(1)


def _run_score(args: argparse.Namespace) -> None:
    """Execute the score command."""
    from flowcheck.validation.scorer import (
        score_resource_locator,
        should_apply_recommendation,
    )

    result = score_resource_locator(
        args.field_name, args.node_type, args.value
    )
    payload = result.to_dict()
    payload["apply"] = should_apply_recommendation(
        result.value, args.threshold
    )
    _print_json(payload)


def _db_url(settings: Settings, db_arg: str | None) -> str:
    return f"sqlite:///{db_arg}" if db_arg else settings.database_url


def _with_session(
    db_url: str,
    work: Callable[[Any], Awaitable[T]],
) -> T:
    """Run ``work(session)`` against a fresh engine, then dispose it."""
    from sqlalchemy.ext.asyncio import async_sessionmaker

    from flowcheck.models.base import Base

    async def _run() -> T:
        engine = create_app_engine(db_url)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            factory = async_sessionmaker(engine, expire_on_commit=False)
            async with factory() as session:
                result = await work(session)
                await session.commit()
                return result
        finally:
            await engine.dispose()

    return asyncio.run(_run())


def _run_versions(args: argparse.Namespace) -> None:
    """Execute a versions subcommand."""
    from flowcheck.repositories.node_repo import SqlNodeRepository
    from flowcheck.versions.breaking_changes import load_registry
    from flowcheck.versions.schemas import VersionMetadata
    from flowcheck.versions.service import create_version_service

    settings = Settings()
    db_url = _db_url(settings, args.db)

    if args.versions_command == "import":
        document = _load_document(args.path)
        raw = (
            document.get("versions")
            if isinstance(document, dict)
            else document
        )
        if not isinstance(raw, list):
            _fail("expected a list of version records")
        try:
            records = [VersionMetadata.model_validate(r) for r in raw]
        except ValidationError as exc:
            _fail(f"invalid version record: {exc}")

        async def _import(session: Any) -> int:
            repo = SqlNodeRepository(session)
            for record in records:
                await repo.upsert_version(record)
            return len(records)

        count = _with_session(db_url, _import)
        print(f"Imported {count} version record(s)")
        return

    if args.versions_command not in ("analyze", "upgrade-path"):
        _fail("choose one of: import, analyze, upgrade-path")

    registry = load_registry(settings.breaking_changes_path)

    async def _query(session: Any) -> Any:
        service = create_version_service(
            SqlNodeRepository(session), registry
        )
        if args.versions_command == "analyze":
            return await service.analyze_version(
                args.node_type, args.current_version
            )
        return await service.suggest_upgrade_path(
            args.node_type,
            args.current_version,
            timeout=settings.upgrade_plan_timeout_seconds,
        )

    try:
        result = _with_session(db_url, _query)
    except FlowcheckError as exc:
        _fail(str(exc))
    except TimeoutError:
        _fail("upgrade planning timed out")

    if result is None:
        print(
            f"No upgrade needed for {args.node_type} "
            f"v{args.current_version}"
        )
        return
    _print_json(result.model_dump(mode="json"))


def _run_mcp(args: argparse.Namespace) -> None:
    """Start the MCP server."""
    if args.db and not Path(args.db).exists():
        _fail(f"database not found: {args.db}")

    settings = Settings()
    asyncio.run(
        _setup_and_run_mcp(
            settings,
            _db_url(settings, args.db),
            args.transport,
            args.host,
            args.port,
        )
    )


async def _setup_and_run_mcp(
    settings: Settings,
    db_url: str,
    transport: str = "stdio",
    host: str = "0.0.0.0",
    port: int = 8001,
) -> None:
    """Initialize engine, configure tools, run MCP, dispose engine."""
    from sqlalchemy.ext.asyncio import async_sessionmaker

    from flowcheck.mcp import configure, mcp
    from flowcheck.models.base import Base
    from flowcheck.validation.scorer import load_heuristics
    from flowcheck.versions.breaking_changes import load_registry
    from flowcheck.versions.cache import VersionCache

    engine = create_app_engine(db_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    configure(
        async_sessionmaker(engine, expire_on_commit=False),
        version_cache=VersionCache(
            ttl_seconds=settings.version_cache_ttl_seconds
        ),
        default_profile=settings.default_profile,
        heuristics=(
            load_heuristics(settings.locator_heuristics_path)
            if settings.locator_heuristics_path
            else None
        ),
        registry=load_registry(settings.breaking_changes_path),
        plan_timeout=settings.upgrade_plan_timeout_seconds,
    )

    try:
        if transport == "stdio":
            await mcp.run_async(transport="stdio")
        else:
            await mcp.run_async(
                transport="sse", host=host, port=port
            )
    finally:
        await engine.dispose()


def _run_serve(args: argparse.Namespace) -> None:
    """Start the HTTP API under uvicorn."""
    import uvicorn

    uvicorn.run(
        "flowcheck.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
