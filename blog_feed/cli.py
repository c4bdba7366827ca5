from __future__ import annotations

import argparse
import sys
from contextlib import ExitStack
from dataclasses import dataclass
from typing import Sequence

from .auth_api import AuthApi
from .categories_api import CategoriesApi
from .config import load_config, resolve_base_url, resolve_login_secrets
from .config_schema import AppConfig
from .controller import FeedController
from .credentials import SQLiteCredentialStore
from .errors import ApiError, ConfigError, SessionExpiredError, StorageError, classify_error
from .event_log import EventLogger
from .filter_state import SEARCH_TYPES, SORT_OPTIONS
from .http_client import ApiClient
from .pipeline import FilterResult
from .posts_api import PostsApi

_USER_MESSAGES = {
    "transient": "The server could not be reached or failed; try again.",
    "not_found": "That resource was not found.",
    "forbidden": "You do not have permission to do that.",
    "validation": "The request was rejected as invalid.",
    "auth_expired": "You are not logged in; run: python -m blog_feed login",
}


@dataclass
class _Session:
    config: AppConfig
    client: ApiClient
    logger: EventLogger | None


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="blog_feed")
    parser.add_argument("--config", help="Path to YAML config file (defaults apply when omitted).")
    parser.add_argument("--log", help="Append JSONL events to this file.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    login = subparsers.add_parser(
        "login",
        help="Log in with the email/password environment variables and store the tokens.",
    )
    login.set_defaults(_handler=_cmd_login)

    logout = subparsers.add_parser("logout", help="Log out and clear stored credentials.")
    logout.set_defaults(_handler=_cmd_logout)

    whoami = subparsers.add_parser("whoami", help="Show the logged-in profile.")
    whoami.set_defaults(_handler=_cmd_whoami)

    browse = subparsers.add_parser(
        "browse",
        help="Fetch the post window and print one filtered, sorted page.",
    )
    browse.add_argument("--query", default="", help="Search text.")
    browse.add_argument("--search-type", choices=SEARCH_TYPES, default="all")
    browse.add_argument("--category", default=None, help="Category id or slug.")
    browse.add_argument("--sort", choices=SORT_OPTIONS, default="newest")
    browse.add_argument("--page", type=_positive_int, default=1)
    browse.add_argument(
        "--offline",
        action="store_true",
        help="Use a built-in sample dataset instead of the backend.",
    )
    browse.set_defaults(_handler=_cmd_browse)

    suggest = subparsers.add_parser("suggest", help="Show search suggestions for a query.")
    suggest.add_argument("--query", required=True)
    suggest.add_argument("--type", default="all", choices=("all", "authors", "titles", "tags"))
    suggest.set_defaults(_handler=_cmd_suggest)

    categories = subparsers.add_parser("categories", help="List categories.")
    categories.set_defaults(_handler=_cmd_categories)

    return parser


def _positive_int(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return n


def _eprint(message: str) -> None:
    print(message, file=sys.stderr)


def _on_session_ended(login_path: str) -> None:
    _eprint(f"Your session has ended. Log in again ({login_path}): python -m blog_feed login")


def _open_session(stack: ExitStack, args: argparse.Namespace, logger: EventLogger | None) -> _Session:
    cfg = load_config(args.config)
    store = stack.enter_context(SQLiteCredentialStore.open(cfg.storage.credentials_path))
    client = stack.enter_context(
        ApiClient.from_config(
            cfg,
            credentials=store,
            base_url=resolve_base_url(cfg),
            on_session_ended=_on_session_ended,
            logger=logger,
        )
    )
    return _Session(config=cfg, client=client, logger=logger)


def _print_page(result: FilterResult) -> None:
    print(f"total_matched={result.total_matched}")
    print(f"total_pages={result.total_pages}")
    print(f"page={result.page}")
    for post in result.page_items:
        day = (post.created_at or "")[:10] or "-"
        author = post.author.full_name or "-"
        print(f"- {day} | {post.title} | {author} | views={post.views}")


def _cmd_login(args: argparse.Namespace, logger: EventLogger | None) -> int:
    with ExitStack() as stack:
        session = _open_session(stack, args, logger)
        secrets = resolve_login_secrets(session.config)
        result = AuthApi(session.client).login(secrets.email, secrets.password)

        name = f"{result.user.get('firstName', '')} {result.user.get('lastName', '')}".strip()
        print(f"logged_in={name or secrets.email}")
        print(f"role={result.user.get('role', '')}")
    return 0


def _cmd_logout(args: argparse.Namespace, logger: EventLogger | None) -> int:
    with ExitStack() as stack:
        session = _open_session(stack, args, logger)
        AuthApi(session.client).logout()
    print("logged_out=true")
    return 0


def _cmd_whoami(args: argparse.Namespace, logger: EventLogger | None) -> int:
    with ExitStack() as stack:
        session = _open_session(stack, args, logger)
        user = AuthApi(session.client).me()

    print(f"id={user.get('id', '')}")
    print(f"email={user.get('email', '')}")
    print(f"name={user.get('firstName', '')} {user.get('lastName', '')}".rstrip())
    print(f"role={user.get('role', '')}")
    return 0


def _apply_browse_filters(controller: FeedController, args: argparse.Namespace) -> None:
    controller.set_category(args.category)
    controller.set_sort(args.sort)
    controller.set_search_type(args.search_type)
    controller.submit_query(args.query)
    controller.set_page(args.page)


def _cmd_browse(args: argparse.Namespace, logger: EventLogger | None) -> int:
    if bool(getattr(args, "offline", False)):
        from .offline import offline_posts

        cfg = load_config(args.config)
        controller = FeedController(feed=cfg.feed, logger=logger, posts=offline_posts())
        try:
            _apply_browse_filters(controller, args)
            _print_page(controller.view())
        finally:
            controller.close()
        return 0

    with ExitStack() as stack:
        session = _open_session(stack, args, logger)
        controller = FeedController(
            posts_api=PostsApi(session.client, logger=logger),
            feed=session.config.feed,
            logger=logger,
        )
        stack.callback(controller.close)

        controller.load_posts()
        _apply_browse_filters(controller, args)
        _print_page(controller.view())
    return 0


def _cmd_suggest(args: argparse.Namespace, logger: EventLogger | None) -> int:
    with ExitStack() as stack:
        session = _open_session(stack, args, logger)
        suggestions = PostsApi(session.client, logger=logger).get_search_suggestions(
            args.query, args.type
        )

    print(f"suggestions={len(suggestions)}")
    for s in suggestions:
        print(f"- [{s.type}] {s.display}")
    return 0


def _cmd_categories(args: argparse.Namespace, logger: EventLogger | None) -> int:
    with ExitStack() as stack:
        session = _open_session(stack, args, logger)
        categories = CategoriesApi(session.client, logger=logger).display_categories()

    for c in categories:
        print(f"- {c.slug or c.id} | {c.name}")
    return 0


def _run(args: argparse.Namespace, logger: EventLogger | None) -> int:
    if logger is not None:
        logger.info("command_started", command=args.command, config_path=args.config)
    try:
        handler = getattr(args, "_handler")
        return int(handler(args, logger))
    except Exception as e:
        if logger is not None:
            logger.exception("command_failed", exc=e, command=args.command)
        raise


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        with ExitStack() as stack:
            logger = stack.enter_context(EventLogger.open(args.log)) if args.log else None
            return _run(args, logger)
    except ConfigError as e:
        _eprint(str(e))
        return 2
    except SessionExpiredError:
        # _on_session_ended already told the user
        return 4
    except ApiError as e:
        hint = _USER_MESSAGES.get(classify_error(e))
        _eprint(f"{e}\n{hint}" if hint else str(e))
        return 3
    except StorageError as e:
        _eprint(str(e))
        return 3
    except KeyboardInterrupt:
        _eprint("Interrupted")
        return 130
    except Exception as e:
        _eprint(f"Unexpected error: {e}")
        return 1
