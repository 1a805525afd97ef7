import logging

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

ENCRYPTED_PREFIX = "fernet:"


class TokenCipher:
    """
    Encrypts OAuth tokens before they are written to the settings file.

    Without a key values pass through unchanged. Encrypted values carry the
    "fernet:" prefix so plaintext settings files keep loading after a key is
    introduced.
    """

    def __init__(self, fernet_key=None):
        self.fernet = None
        if fernet_key:
            try:
                self.fernet = Fernet(fernet_key)
            except (ValueError, TypeError) as e:
                logger.warning(f"Could not initialize Fernet encryption, storing tokens in plaintext: {e}")

    @property
    def enabled(self) -> bool:
        return self.fernet is not None

    def encrypt(self, value):
        """Encrypts a token. Empty values are stored as empty strings."""
        if not value:
            return ""
        if not self.fernet:
            return value
        return ENCRYPTED_PREFIX + self.fernet.encrypt(value.encode()).decode()

    def decrypt(self, stored_value):
        """
        Decrypts a stored token.

        Returns:
            str: The token, or None when the value is empty or cannot be
            decrypted with the configured key.
        """
        if not stored_value:
            return None

        if not stored_value.startswith(ENCRYPTED_PREFIX):
            return stored_value

        if not self.fernet:
            logger.error("Stored token is encrypted but FERNET_KEY is not configured")
            return None

        try:
            return self.fernet.decrypt(stored_value[len(ENCRYPTED_PREFIX):].encode()).decode()
        except InvalidToken:
            logger.error("Error decrypting stored token - it will be treated as missing")
            return None
