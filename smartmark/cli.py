import argparse
import logging
import os
import sys
import time

from smartmark.dashboard import ApiError, Dashboard, SmartmarkClient


def _print_bookmarks(bookmarks) -> None:
    if not bookmarks:
        print("No bookmarks.")
        return
    for item in bookmarks:
        print(f"{item.id}  {item.title}\n    {item.url}")


def _print_toast(dashboard: Dashboard) -> None:
    if dashboard.toast:
        print(dashboard.toast)


def cmd_whoami(dashboard: Dashboard, args) -> int:
    stats = dashboard.stats()
    print(f"{dashboard.user.display_name} (id {dashboard.user.id})")
    print(f"{stats.total} bookmarks, {stats.domains} domains")
    if stats.last_added:
        print(f"Last added {stats.last_added}")
    return 0


def cmd_list(dashboard: Dashboard, args) -> int:
    dashboard.search_query = args.search or ""
    _print_bookmarks(dashboard.visible_bookmarks())
    return 0


def cmd_add(dashboard: Dashboard, args) -> int:
    dashboard.title = args.title or ""
    dashboard.set_url(args.url)
    if not dashboard.title:
        print("A title is required (none could be fetched).", file=sys.stderr)
        return 2
    bookmark = dashboard.add_bookmark()
    _print_toast(dashboard)
    if bookmark is None:
        return 1
    print(bookmark.id)
    return 0


def cmd_delete(dashboard: Dashboard, args) -> int:
    deleted = dashboard.delete_bookmark(args.id)
    _print_toast(dashboard)
    return 0 if deleted else 1


def cmd_ask(dashboard: Dashboard, args) -> int:
    dashboard.use_ai_search()
    matched = dashboard.ai_search(args.query)
    _print_toast(dashboard)
    if matched is None:
        return 1
    _print_bookmarks(dashboard.visible_bookmarks())
    return 0


def cmd_title(dashboard: Dashboard, args) -> int:
    title = dashboard.suggest_title(args.url)
    print(title)
    return 0 if title else 1


def cmd_watch(dashboard: Dashboard, args) -> int:
    with dashboard:
        seen = {item.id for item in dashboard.bookmarks}
        print(f"Watching {len(seen)} bookmarks. Ctrl+C to stop.", flush=True)
        try:
            while True:
                if dashboard.sync():
                    current = {item.id for item in dashboard.bookmarks}
                    for item in dashboard.bookmarks:
                        if item.id not in seen:
                            print(f"+ {item.title} <{item.url}>", flush=True)
                    for bookmark_id in seen - current:
                        print(f"- {bookmark_id}", flush=True)
                    seen = current
                time.sleep(args.interval)
        except KeyboardInterrupt:
            pass
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="smartmark")
    p.add_argument(
        "--server", default=os.environ.get("SMARTMARK_URL", "http://127.0.0.1:8072")
    )
    p.add_argument("--token", default=os.environ.get("SMARTMARK_TOKEN"))
    p.add_argument("--verbose", action="store_true")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("whoami").set_defaults(handler=cmd_whoami)

    list_p = sub.add_parser("list")
    list_p.add_argument("--search")
    list_p.set_defaults(handler=cmd_list)

    add_p = sub.add_parser("add")
    add_p.add_argument("url")
    add_p.add_argument("--title")
    add_p.set_defaults(handler=cmd_add)

    delete_p = sub.add_parser("delete")
    delete_p.add_argument("id")
    delete_p.set_defaults(handler=cmd_delete)

    ask_p = sub.add_parser("ask")
    ask_p.add_argument("query")
    ask_p.set_defaults(handler=cmd_ask)

    title_p = sub.add_parser("title")
    title_p.add_argument("url")
    title_p.set_defaults(handler=cmd_title)

    watch_p = sub.add_parser("watch")
    watch_p.add_argument("--interval", type=float, default=2.0)
    watch_p.set_defaults(handler=cmd_watch)
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if not args.token:
        print("Set SMARTMARK_TOKEN or pass --token.", file=sys.stderr)
        return 2

    with SmartmarkClient(args.server, token=args.token) as client:
        try:
            dashboard = Dashboard.load(client)
        except ApiError as exc:
            print(f"Could not load dashboard: {exc.message}", file=sys.stderr)
            return 1
        return args.handler(dashboard, args)


if __name__ == "__main__":
    sys.exit(main())
