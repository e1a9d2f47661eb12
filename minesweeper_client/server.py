"""Flask shell serving the Minesweeper page and driving the session controller."""
import asyncio
import os
import logging
from datetime import datetime
from flask import Flask, request, jsonify, send_from_directory
from flask_cors import CORS

from minesweeper_client.client_provider import ClientConfig, load_client_config
from minesweeper_client.controller import SessionController
from minesweeper_client.session_store import BrowserUrl, JsonFileStorage, SessionStore
from minesweeper_client.transport import GameTransport
from minesweeper_client.types import Difficulty

logger = logging.getLogger(__name__)

app = Flask(__name__, static_folder='../public')
CORS(app)

# Global controller reference
controller: SessionController | None = None


def build_controller(config: ClientConfig) -> SessionController:
    """Wire transport and both persistence channels into a controller."""
    store = SessionStore(url=BrowserUrl(), storage=JsonFileStorage(config.storage_path))
    return SessionController(GameTransport(config), store)


def load_page_url(data):
    """Point the URL channel at the address the page currently shows."""
    url = (data or {}).get('url')
    if url and isinstance(controller.store.url, BrowserUrl):
        controller.store.url.load(url)


def session_response(status_code=200):
    """Current controller view, plus the URL the page should replace itself with."""
    state = controller.state
    url = controller.store.url.href if isinstance(controller.store.url, BrowserUrl) else None
    return jsonify({
        'gameState': state.to_dict() if state else None,
        'phase': controller.phase.value,
        'disabled': controller.disabled,
        'error': controller.error,
        'url': url,
    }), status_code


def parse_coordinates(data):
    x, y = data.get('x'), data.get('y')
    if not isinstance(x, int) or not isinstance(y, int) or isinstance(x, bool) or isinstance(y, bool):
        return None
    return x, y


@app.route('/api/session/recover', methods=['POST'])
def recover_session():
    """Recover the game named by the page URL or durable storage."""
    try:
        data = request.get_json(silent=True) or {}
        load_page_url(data)
        asyncio.run(controller.mount())
        return session_response()

    except Exception as error:
        logger.error(f"Error recovering session: {error}")
        return jsonify({'error': 'Failed to recover session'}), 500


@app.route('/api/session', methods=['POST'])
def create_game():
    """Create a new game."""
    try:
        data = request.get_json(silent=True) or {}
        load_page_url(data)
        difficulty = data.get('difficulty') or Difficulty.EASY.value
        if not isinstance(difficulty, str):
            return jsonify({'error': 'Invalid difficulty'}), 400

        asyncio.run(controller.new_game(difficulty))
        return session_response()

    except Exception as error:
        logger.error(f"Error creating game: {error}")
        return jsonify({'error': 'Failed to create game'}), 500


def make_move(action):
    data = request.get_json(silent=True) or {}
    load_page_url(data)
    coordinates = parse_coordinates(data)
    if coordinates is None:
        return jsonify({'error': 'Invalid move request'}), 400

    board = controller.board()
    if board is None:
        return jsonify({'error': 'No active game'}), 409

    move = board.reveal(*coordinates) if action == 'reveal' else board.toggle_flag(*coordinates)
    if move is None:
        if not board.state.has_cell(*coordinates):
            return jsonify({'error': 'Cell is not on the board'}), 400
        return session_response(409)

    asyncio.run(move)
    return session_response()


@app.route('/api/session/reveal', methods=['POST'])
def reveal_cell():
    """Reveal a cell."""
    try:
        return make_move('reveal')

    except Exception as error:
        logger.error(f"Error revealing cell: {error}")
        return jsonify({'error': 'Failed to reveal cell'}), 500


@app.route('/api/session/toggle-flag', methods=['POST'])
def toggle_flag():
    """Toggle flag on a cell."""
    try:
        return make_move('toggle-flag')

    except Exception as error:
        logger.error(f"Error toggling flag: {error}")
        return jsonify({'error': 'Failed to toggle flag'}), 500


@app.route('/api/session', methods=['DELETE'])
def clear_session():
    """Forget the saved game."""
    try:
        load_page_url(request.get_json(silent=True))
        controller.clear()
        return session_response()

    except Exception as error:
        logger.error(f"Error clearing session: {error}")
        return jsonify({'error': 'Failed to clear session'}), 500


@app.route('/api/session/error', methods=['DELETE'])
def dismiss_error():
    """Dismiss the last user-visible error."""
    controller.dismiss_error()
    return session_response()


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'OK',
        'timestamp': datetime.now().isoformat()
    })


@app.route('/')
def index():
    """Serve the frontend."""
    return send_from_directory(app.static_folder, 'index.html')


@app.route('/<path:path>')
def serve_static(path):
    """Serve static files."""
    return send_from_directory(app.static_folder, path)


def initialize_controller(config: ClientConfig | None = None):
    """Initialize the session controller."""
    global controller
    config = config or load_client_config()
    controller = build_controller(config)
    logger.info(f"Using game server at {config.api_base}")
    return controller


def main():
    """Start the Flask server."""
    logging.basicConfig(level=logging.INFO)
    try:
        initialize_controller()

        port = int(os.getenv("PORT", 3000))
        logger.info(f"Minesweeper client running on http://localhost:{port}")

        # One tab, one controller: requests are handled one at a time.
        app.run(host='127.0.0.1', port=port, debug=False, threaded=False)

    except Exception as error:
        logger.error(f"Failed to start server: {error}")
        exit(1)


if __name__ == "__main__":
    main()
