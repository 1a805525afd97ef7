"""
Ways of obtaining a Zoho Books authorization code from the operator.

A provider is any object with ``get_authorization_code(authorization_url, state)``
returning the code. It raises AuthExchangeFailed when no usable code arrives.
"""

import logging
import queue
import threading
import urllib.parse

from werkzeug.serving import make_server

from syncro_zoho.api.oauth_callback import create_callback_app
from syncro_zoho.exceptions import AuthExchangeFailed

logger = logging.getLogger(__name__)


def extract_authorization_code(value, expected_state):
    """
    Pull the code out of what the operator pasted.

    Accepts either the bare code or the full URL the browser was redirected to.
    For a URL the ``state`` parameter must match and an ``error`` parameter is
    reported as a failure.
    """
    text = (value or "").strip()
    if not text:
        raise AuthExchangeFailed("No authorization code was entered")

    if "://" not in text and "code=" not in text:
        return text

    parsed = urllib.parse.urlparse(text)
    query = urllib.parse.parse_qs(parsed.query or text.split("?", 1)[-1])

    error = query.get("error", [None])[0]
    if error:
        raise AuthExchangeFailed(f"Authorization was denied: {error}")

    code = query.get("code", [None])[0]
    if not code:
        raise AuthExchangeFailed("Redirect URL carries no authorization code")

    state = query.get("state", [None])[0]
    if state != expected_state:
        raise AuthExchangeFailed("Redirect URL state does not match the authorization request")
    return code


class PromptCodeProvider:
    """Prints the authorization URL and reads the code from the console."""

    def __init__(self, input_func=input, output_func=print):
        self.input_func = input_func
        self.output_func = output_func

    def get_authorization_code(self, authorization_url, state):
        self.output_func("Zoho Books authorization required. Open this URL in a browser and approve access:")
        self.output_func(authorization_url)
        try:
            value = self.input_func("Paste the authorization code or the full redirect URL: ")
        except EOFError as e:
            raise AuthExchangeFailed("No authorization code was entered") from e
        return extract_authorization_code(value, state)


class CallbackCodeProvider:
    """
    Serves the redirect URI locally until Zoho redirects the browser to it.

    The host, port and path come from the configured redirect URI, which must
    point at this machine (e.g. http://localhost:8000/callback).
    """

    def __init__(self, redirect_uri, timeout_seconds=300, output_func=print):
        parsed = urllib.parse.urlparse(redirect_uri)
        if not parsed.hostname:
            raise AuthExchangeFailed(f"Redirect URI {redirect_uri} has no host to listen on")
        self.host = parsed.hostname
        self.port = parsed.port or (443 if parsed.scheme == "https" else 80)
        self.path = parsed.path or "/callback"
        self.timeout_seconds = timeout_seconds
        self.output_func = output_func

    def get_authorization_code(self, authorization_url, state):
        code_queue = queue.Queue(maxsize=1)
        app = create_callback_app(code_queue, state, callback_path=self.path)

        try:
            server = make_server(self.host, self.port, app)
        except OSError as e:
            raise AuthExchangeFailed(f"Could not listen on {self.host}:{self.port}: {e}") from e

        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        logger.info(f"Waiting up to {self.timeout_seconds}s for the OAuth callback on {self.host}:{self.port}{self.path}")
        self.output_func("Zoho Books authorization required. Open this URL in a browser and approve access:")
        self.output_func(authorization_url)

        try:
            return code_queue.get(timeout=self.timeout_seconds)
        except queue.Empty as e:
            raise AuthExchangeFailed(f"No OAuth callback received within {self.timeout_seconds}s") from e
        finally:
            server.shutdown()
            thread.join(timeout=5)
