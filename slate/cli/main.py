"""CLI entry point for Slate."""

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Any, Awaitable, Callable

from slate.core.config import Config, ConfigError, load_config, save_config
from slate.core.errors import SlateError
from slate.core.models import ClipboardItem
from slate.core.service import ClipboardService


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for CLI."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def _load() -> Config | None:
    try:
        return load_config()
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return None


def _with_service(config: Config, action: Callable[[ClipboardService], Awaitable[Any]]) -> Any:
    """Run one gateway action against the store, then close it."""
    async def _run():
        service = ClipboardService(config)
        try:
            return await action(service)
        finally:
            await service.store.close()

    return asyncio.run(_run())


def _print_item(item: ClipboardItem) -> None:
    pin = '*' if item.pinned else ' '
    if item.type.value == 'image':
        preview = f"<image, {len(item.content)} bytes encoded>"
    else:
        preview = item.content[:80].replace('\n', ' ')
    print(f" {pin} {item.id}  [{item.type.value}]  {preview}")
    if item.metadata and item.metadata.title:
        print(f"      {item.metadata.title}")


def cmd_start(args: argparse.Namespace) -> int:
    """Start clipboard monitoring service."""
    print("Starting Slate clipboard service...")

    config = _load()
    if config is None:
        return 1

    try:
        service = ClipboardService(config)
    except SlateError as e:
        print(f"Could not open history: {e}")
        return 1

    async def _serve() -> None:
        loop = asyncio.get_running_loop()

        # Handle graceful shutdown
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, service.request_stop)
            except (NotImplementedError, RuntimeError):
                # Windows event loops have no signal handler support
                pass

        if args.web:
            from slate.web.app import run_server
            run_server(service.gateway, loop, config.web_host, config.web_port)
            print(f"Command surface on http://{config.web_host}:{config.web_port}")

        print(f"History: {config.db_path}")
        print("\nPress Ctrl+C to stop.")
        await service.serve_forever()

    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        print("\nShutting down...")

    return 0


def cmd_list(args: argparse.Namespace) -> int:
    """List clipboard history."""
    config = _load()
    if config is None:
        return 1

    async def _action(service: ClipboardService):
        if args.pinned:
            return await service.gateway.get_pinned()
        if args.query or args.type:
            return await service.gateway.search(args.query or "", args.type)
        return await service.gateway.get_all()

    try:
        items = _with_service(config, _action)
    except SlateError as e:
        print(f"Error: {e}")
        return 1

    if not items:
        print("Clipboard history is empty")
        return 0

    for item in items[:args.limit]:
        _print_item(item)
    return 0


def _item_command(command: str) -> Callable[[argparse.Namespace], int]:
    def handler(args: argparse.Namespace) -> int:
        config = _load()
        if config is None:
            return 1

        try:
            result = _with_service(config, lambda service: service.gateway.dispatch(command, args.id))
        except SlateError as e:
            print(f"Error: {e}")
            return 1

        if not result.ok:
            print(f"Error: {result.error}")
            return 1

        if isinstance(result.value, ClipboardItem):
            _print_item(result.value)
        elif command == 'delete':
            print("Deleted" if result.value else f"No item with id {args.id}")
        return 0

    handler.__doc__ = f"Run {command} on one item."
    return handler


def cmd_copy(args: argparse.Namespace) -> int:
    """Copy a stored item back onto the clipboard."""
    config = _load()
    if config is None:
        return 1

    async def _action(service: ClipboardService):
        item = await service.store.get(args.id)
        if item is None:
            return {'success': False, 'error': f"No item with id {args.id}"}
        return await service.gateway.copy_to_clipboard(item.content)

    try:
        outcome = _with_service(config, _action)
    except SlateError as e:
        print(f"Error: {e}")
        return 1

    if not outcome['success']:
        print(f"Copy failed: {outcome['error']}")
        return 1
    print("Copied to clipboard")
    return 0


def cmd_preview(args: argparse.Namespace) -> int:
    """Fetch a link preview."""
    config = _load()
    if config is None:
        return 1

    try:
        metadata = _with_service(config, lambda service: service.gateway.get_link_preview(args.url))
    except SlateError as e:
        print(f"Error: {e}")
        return 1

    if metadata is None:
        print(f"Not a valid link: {args.url}")
        return 1

    print(json.dumps(metadata.to_dict(), indent=2))
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    """Display statistics."""
    config = _load()
    if config is None:
        return 1

    try:
        stats = _with_service(config, lambda service: service.gateway.stats())
    except SlateError as e:
        print(f"Error: {e}")
        return 1

    print("Slate Statistics")
    print("=" * 40)
    print(f"Total items: {stats['total']}")
    print(f"Pinned: {stats['pinned']}")
    print("\nBy Type:")
    for item_type, count in sorted(stats['by_type'].items()):
        print(f"  {item_type}: {count}")
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Show or change configuration."""
    try:
        config = load_config()
    except ConfigError:
        # Start from defaults when the saved file is unusable
        config = Config()

    changed = False
    if args.poll_interval is not None:
        config.poll_interval = args.poll_interval
        changed = True
    if args.preview_timeout is not None:
        config.preview_timeout_ms = args.preview_timeout
        changed = True
    if args.port is not None:
        config.web_port = args.port
        changed = True
    if args.images is not None:
        config.capture_images = args.images == 'on'
        changed = True

    if changed:
        try:
            save_config(config)
        except (ConfigError, OSError) as e:
            print(f"Could not save configuration: {e}")
            return 1
        print("Configuration saved")
        return 0

    print("Slate Configuration")
    print("=" * 40)
    print(f"Data directory: {config.data_dir}")
    print(f"Database: {config.db_path}")
    print(f"Poll interval: {config.poll_interval}s")
    print(f"Capture images: {config.capture_images}")
    print(f"Preview timeout: {config.preview_timeout_ms}ms")
    print(f"Web: {config.web_host}:{config.web_port}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='slate',
        description='Slate: clipboard history manager'
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose output')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # start command
    start_parser = subparsers.add_parser('start', help='Start clipboard monitoring service')
    start_parser.add_argument('--web', action='store_true', help='Also serve the JSON command surface')
    start_parser.set_defaults(func=cmd_start)

    # list command
    list_parser = subparsers.add_parser('list', help='List clipboard history')
    list_parser.add_argument('--pinned', action='store_true', help='Only pinned items')
    list_parser.add_argument('-q', '--query', help='Substring filter')
    list_parser.add_argument('-t', '--type', choices=['text', 'image', 'link'], help='Type filter')
    list_parser.add_argument('-l', '--limit', type=int, default=20, help='Max results')
    list_parser.set_defaults(func=cmd_list)

    # item commands
    for name, help_text in (
        ('pin', 'Pin an item'),
        ('unpin', 'Unpin an item'),
        ('toggle-pin', 'Toggle an item\'s pin state'),
        ('delete', 'Delete an item'),
    ):
        item_parser = subparsers.add_parser(name, help=help_text)
        item_parser.add_argument('id', help='Item id')
        item_parser.set_defaults(func=_item_command(name))

    # copy command
    copy_parser = subparsers.add_parser('copy', help='Copy an item back to the clipboard')
    copy_parser.add_argument('id', help='Item id')
    copy_parser.set_defaults(func=cmd_copy)

    # preview command
    preview_parser = subparsers.add_parser('preview', help='Fetch a link preview')
    preview_parser.add_argument('url', help='Link to preview')
    preview_parser.set_defaults(func=cmd_preview)

    # stats command
    stats_parser = subparsers.add_parser('stats', help='Display statistics')
    stats_parser.set_defaults(func=cmd_stats)

    # config command
    config_parser = subparsers.add_parser('config', help='Show or change configuration')
    config_parser.add_argument('--poll-interval', type=float, help='Clipboard poll interval in seconds')
    config_parser.add_argument('--preview-timeout', type=int, help='Link preview timeout in milliseconds')
    config_parser.add_argument('--port', type=int, help='Port for the JSON command surface')
    config_parser.add_argument('--images', choices=['on', 'off'], help='Capture images from the clipboard')
    config_parser.set_defaults(func=cmd_config)

    return parser


def main() -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args()

    setup_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
