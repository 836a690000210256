"""
cli.py

Responsibility: CLI entrypoint for treepub.

High-level flow (single command `publish`):
1) Load configuration (file -> environment -> flags)
2) Build an object store (GitHub, or in-memory for --dry-run)
3) Publish the source directory to the target branch
4) Print a one-line summary; exit non-zero on failure

This module should orchestrate behavior but keep concerns isolated:
- Configuration: `config.py`
- GitHub API: `github_client.py`
- Publishing: `publisher.py`
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys

from treepub.config import ConfigError, PublishConfig, load_config, validate_config
from treepub.github_client import GitHubClient, GitHubObjectStore
from treepub.memory_store import InMemoryObjectStore
from treepub.publisher import Publisher
from treepub.store import ObjectStore
from treepub.uploader import BlobUploader

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def _apply_overrides(config: PublishConfig, args: argparse.Namespace) -> PublishConfig:
    overrides: dict[str, object] = {}
    if args.source_dir is not None:
        overrides["source_dir"] = args.source_dir
    if args.repository is not None:
        overrides["repository"] = args.repository
    if args.branch is not None:
        overrides["branch"] = args.branch
    if args.base_branch is not None:
        overrides["base_branch"] = args.base_branch
    if args.github_token is not None:
        overrides["token"] = args.github_token
    if args.message is not None:
        overrides["commit_message"] = args.message
    if args.max_workers is not None:
        overrides["max_workers"] = args.max_workers
    if args.allow_partial:
        overrides["allow_partial"] = True
    if args.force is not None:
        overrides["force"] = args.force
    config = dataclasses.replace(config, **overrides)
    validate_config(config)
    return config


def _build_store(config: PublishConfig, *, dry_run: bool) -> ObjectStore:
    if dry_run:
        return InMemoryObjectStore(default_branch=config.base_branch or "main")
    if not config.repository:
        raise ConfigError("Repository is required (use --repository or set GITHUB_REPOSITORY)")
    if not config.token:
        raise ConfigError("GitHub token is required (use --github-token or set GITHUB_TOKEN)")
    client = GitHubClient(config.token, config.api_base)
    return GitHubObjectStore(client, config.owner, config.repo_name, base_branch=config.base_branch)


def build_publisher(config: PublishConfig, store: ObjectStore) -> Publisher:
    return Publisher(
        store,
        author=config.author,
        message_template=config.commit_message,
        message_context={"repository": config.repository, "source_sha": config.source_sha},
        uploader=BlobUploader(store, max_workers=config.max_workers, attempts=config.upload_attempts),
        allow_partial=config.allow_partial,
        force=config.force,
    )


def publish_cmd(args: argparse.Namespace) -> int:
    try:
        config = _apply_overrides(load_config(args.config), args)
        store = _build_store(config, dry_run=bool(args.dry_run))
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    result = build_publisher(config, store).publish(config.source_dir, config.branch)
    if not result.success:
        print(result.summary(), file=sys.stderr)
        return EXIT_FAILED
    prefix = "[dry-run] " if args.dry_run else ""
    print(f"{prefix}{result.summary()}")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="treepub", description="Publish a built directory to a GitHub branch")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    b = sub.add_parser("publish", help="Upload a directory and move the branch to a new commit")
    b.add_argument("source_dir", nargs="?", default=None, help="Directory to publish (default: dist)")
    b.add_argument("--config", default=None, help="YAML config file (or markdown with YAML frontmatter)")
    b.add_argument("--repository", default=None, help="Target repository as owner/name (or set GITHUB_REPOSITORY)")
    b.add_argument("--branch", default=None, help="Branch to publish to (default: gh-pages)")
    b.add_argument("--base-branch", default=None, help="Branch to seed a new branch from (default: repo default)")
    b.add_argument("--github-token", default=None, help="GitHub token (or set env GITHUB_TOKEN)")
    b.add_argument("--message", default=None, help="Commit message (Jinja2 template)")
    b.add_argument("--max-workers", type=int, default=None, help="Concurrent blob uploads (default: 8)")
    b.add_argument("--allow-partial", action="store_true", help="Publish even if some uploads fail")
    b.add_argument("--force", dest="force", action="store_true", default=None, help="Force the ref update (default)")
    b.add_argument(
        "--no-force",
        dest="force",
        action="store_false",
        help="Only fast-forward the branch; fail if it moved during the publish",
    )
    b.add_argument("--dry-run", action="store_true", help="Publish into an in-memory store; no network access")

    b.set_defaults(func=publish_cmd)
    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
