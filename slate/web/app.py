"""Flask application exposing the Slate command surface as JSON."""

import asyncio
import concurrent.futures
import logging
import threading

from flask import Flask, jsonify, request

from slate.core.gateway import CommandGateway, CommandResult

logger = logging.getLogger(__name__)

COMMAND_TIMEOUT: float = 30.0  # seconds

STATUS_BY_ERROR = {
    'ValidationError': 400,
    'NotFoundError': 404,
    'StorageError': 500,
}


def create_app(gateway: CommandGateway, loop: asyncio.AbstractEventLoop) -> Flask:
    """Build the Flask app.

    Args:
        gateway: Command gateway to delegate to.
        loop: Running event loop that owns the gateway. Requests are
            executed on it, never on the Flask worker thread.

    Returns:
        Configured Flask application.
    """
    app = Flask(__name__)

    def run_command(command: str, *args):
        future = asyncio.run_coroutine_threadsafe(gateway.dispatch(command, *args), loop)
        try:
            result = future.result(timeout=COMMAND_TIMEOUT)
        except concurrent.futures.TimeoutError:
            future.cancel()
            result = CommandResult(ok=False, error=f"Command {command} timed out", error_type='TimeoutError')
        status = 200 if result.ok else STATUS_BY_ERROR.get(result.error_type, 500)
        return jsonify(result.to_dict()), status

    @app.route('/api/commands')
    def api_commands():
        """Available command names."""
        return jsonify(gateway.commands)

    @app.route('/api/items')
    def api_items():
        """All items, or a filtered listing when q or type is given."""
        query = request.args.get('q', '')
        item_type = request.args.get('type')
        if query or item_type:
            return run_command('search', query, item_type)
        return run_command('get-all')

    @app.route('/api/items/pinned')
    def api_pinned():
        return run_command('get-pinned')

    @app.route('/api/items/<item_id>', methods=['DELETE'])
    def api_delete(item_id: str):
        return run_command('delete', item_id)

    @app.route('/api/items/<item_id>/toggle-pin', methods=['POST'])
    def api_toggle_pin(item_id: str):
        return run_command('toggle-pin', item_id)

    @app.route('/api/items/<item_id>/pin', methods=['POST'])
    def api_pin(item_id: str):
        return run_command('pin', item_id)

    @app.route('/api/items/<item_id>/unpin', methods=['POST'])
    def api_unpin(item_id: str):
        return run_command('unpin', item_id)

    @app.route('/api/copy', methods=['POST'])
    def api_copy():
        payload = request.get_json(silent=True) or {}
        return run_command('copy-to-clipboard', payload.get('content'))

    @app.route('/api/preview')
    def api_preview():
        return run_command('get-link-preview', request.args.get('url', ''))

    @app.route('/api/stats')
    def api_stats():
        return run_command('stats')

    return app


def run_server(
    gateway: CommandGateway,
    loop: asyncio.AbstractEventLoop,
    host: str = '127.0.0.1',
    port: int = 5757,
) -> threading.Thread:
    """Serve the command surface from a daemon thread.

    Returns:
        The server thread.
    """
    app = create_app(gateway, loop)
    thread = threading.Thread(
        target=app.run,
        kwargs={'host': host, 'port': port, 'debug': False, 'use_reloader': False},
        daemon=True,
        name="slate-web",
    )
    thread.start()
    logger.info(f"Command surface listening on http://{host}:{port}")
    return thread
