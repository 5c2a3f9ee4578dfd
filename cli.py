from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path


def _load_project_version(pyproject_path: Path | None = None) -> str:
    """Best-effort loader for the project version from pyproject.toml.

    This avoids importing the app (and its Starlette/Redis wiring) just to
    answer a simple CLI query like `--version`.
    """
    if pyproject_path is None:
        pyproject_path = Path(__file__).with_name("pyproject.toml")

    import tomllib

    try:
        data = tomllib.loads(pyproject_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return "0.0.0"
    except tomllib.TOMLDecodeError:
        return "0.0.0"

    project = data.get("project") or {}
    version = project.get("version")
    if isinstance(version, str) and version.strip():
        return version.strip()
    return "0.0.0"


async def _check_redis(url: str) -> tuple[str, str]:
    from github_gateway.etag_cache import RedisEtagStore

    store = RedisEtagStore.from_url(url)
    try:
        await store.ping()
    except Exception as exc:  # noqa: BLE001
        return "error", f"Redis at {url} is unreachable: {exc}"
    finally:
        await store.aclose()
    return "ok", f"Redis at {url} answered PING"


def _collect_checks() -> list[dict[str, str]]:
    from github_gateway.config import load_settings

    settings = load_settings()
    checks: list[dict[str, str]] = []

    if settings.api_key:
        checks.append({"name": "api_key", "level": "ok", "message": "GATEWAY_API_KEY is configured"})
    else:
        checks.append(
            {
                "name": "api_key",
                "level": "error",
                "message": "GATEWAY_API_KEY is not set; API routes will answer 500",
            }
        )

    if settings.github_token:
        checks.append({"name": "github_token", "level": "ok", "message": "GitHub token is configured"})
    else:
        checks.append(
            {
                "name": "github_token",
                "level": "warning",
                "message": "Neither GITHUB_PAT nor GITHUB_TOKEN is set; upstream calls are anonymous",
            }
        )

    if settings.redis_url:
        level, message = asyncio.run(_check_redis(settings.redis_url))
        checks.append({"name": "etag_store", "level": level, "message": message})
    else:
        checks.append(
            {
                "name": "etag_store",
                "level": "warning",
                "message": "GATEWAY_REDIS_URL is not set; ETags are cached in-process only",
            }
        )

    return checks


def _run_doctor() -> int:
    """Run basic environment checks and print a human-readable summary."""
    checks = _collect_checks()

    ok = sum(1 for c in checks if c.get("level") == "ok")
    warning = sum(1 for c in checks if c.get("level") == "warning")
    error = sum(1 for c in checks if c.get("level") == "error")
    status = "error" if error else ("warning" if warning else "ok")

    print(f"Status: {status}")
    print(f"Checks: ok={ok}, warning={warning}, error={error}")
    for check in checks:
        name = check.get("name", "?")
        level = check.get("level", "?")
        message = check.get("message", "")
        print(f"- [{level}] {name}: {message}")

    return 0 if status != "error" else 1


def _run_operations() -> int:
    from github_gateway.config import load_settings
    from github_gateway.operations import build_default_registry

    settings = load_settings()
    registry = build_default_registry(settings.blocked_operations)
    for operation in sorted(registry, key=lambda op: op.key):
        if (operation.namespace, operation.method) not in registry:
            continue
        if operation.path:
            print(f"{operation.key}\t{operation.http_method} {operation.path}")
        else:
            print(f"{operation.key}\t(handler)")
    return 0


def _run_serve(host: str, port: int) -> int:
    import uvicorn

    from github_gateway.app import create_app

    uvicorn.run(create_app(), host=host, port=port, log_config=None)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="github-gateway",
        description="GitHub gateway CLI helpers.",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print the gateway version and exit.",
    )

    subparsers = parser.add_subparsers(dest="command")
    serve = subparsers.add_parser("serve", help="Run the gateway under uvicorn.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    subparsers.add_parser(
        "doctor",
        help="Check API key, GitHub token and ETag store configuration.",
    )
    subparsers.add_parser(
        "operations",
        help="List the namespace.method operations the proxy resolves.",
    )

    if argv is None:
        argv = sys.argv[1:]

    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        # When used as a library function in tests, return the exit code
        # instead of raising. The __main__ guard still exits with this code
        # when the CLI is invoked from the shell.
        return int(getattr(exc, "code", 1) or 0)

    if args.version and not args.command:
        print(_load_project_version())
        return 0

    if args.command == "doctor":
        return _run_doctor()
    if args.command == "operations":
        return _run_operations()
    if args.command == "serve":
        return _run_serve(args.host, args.port)

    # Default: show help if no command/flag was given.
    parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
