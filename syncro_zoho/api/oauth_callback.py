"""
Short-lived Flask app that receives the Zoho Books OAuth redirect.
"""

import queue

from flask import Blueprint, Flask, current_app, jsonify, request

oauth_callback_bp = Blueprint('oauth_callback', __name__)


@oauth_callback_bp.route('/callback', methods=['GET'])
def callback():
    """Callback route for Zoho Books OAuth2."""
    try:
        code = request.args.get('code')
        state = request.args.get('state')
        error = request.args.get('error')

        current_app.logger.info(f"Callback - state: {state}, error: {error}")

        if error:
            current_app.logger.error(f"Error in callback: {error}")
            return jsonify({'error': f'Authorization denied: {error}'}), 400

        if not code:
            current_app.logger.error("No code provided in callback")
            return jsonify({'error': 'No code provided'}), 400

        if state != current_app.config['OAUTH_EXPECTED_STATE']:
            current_app.logger.error("State mismatch in callback")
            return jsonify({'error': 'State mismatch'}), 400

        current_app.config['OAUTH_CODE_QUEUE'].put_nowait(code)
        current_app.logger.info("Authorization code received")
        return jsonify({'success': True, 'message': 'Zoho Books authorization received. You can close this window.'}), 200
    except queue.Full:
        current_app.logger.warning("Authorization code already received, ignoring repeat callback")
        return jsonify({'error': 'Authorization already completed'}), 409


def create_callback_app(code_queue, expected_state, callback_path='/callback'):
    """
    Build the callback app.

    Args:
        code_queue (queue.Queue): Receives the authorization code.
        expected_state (str): The state sent with the authorization URL.
        callback_path (str): Path of the configured redirect URI.

    Returns:
        Flask
    """
    app = Flask(__name__)
    app.config['OAUTH_CODE_QUEUE'] = code_queue
    app.config['OAUTH_EXPECTED_STATE'] = expected_state

    app.register_blueprint(oauth_callback_bp)
    if callback_path and callback_path.rstrip('/') not in ('', '/callback'):
        app.add_url_rule(callback_path, endpoint='redirect_callback', view_func=callback, methods=['GET'])
    return app
