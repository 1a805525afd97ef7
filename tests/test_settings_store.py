"""
Tests for the settings file layer and token encryption
"""

import os
import sys
import unittest
from datetime import datetime, timezone
from unittest.mock import patch

from cryptography.fernet import Fernet

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tests.base_test import BaseTestCase, make_settings_document
from syncro_zoho.exceptions import ConfigError, PersistenceFailed
from syncro_zoho.helpers.token_cipher import TokenCipher
from syncro_zoho.models.sync_models import TokenState
from syncro_zoho.services.settings_store import SettingsStore


class TestSettingsStore(BaseTestCase):
    """Test cases for SettingsStore"""

    def test_load_settings(self):
        self.write_settings(make_settings_document(
            AccessToken="access-1",
            RefreshToken="refresh-1",
            TokenExpiration="2026-03-01T10:00:00+00:00",
        ))

        settings = SettingsStore(self.settings_path).load()

        self.assertEqual(settings.zoho_books, self.zoho_settings)
        self.assertEqual(settings.syncro, self.syncro_settings)
        self.assertEqual(settings.token_state.access_token, "access-1")
        self.assertEqual(settings.token_state.refresh_token, "refresh-1")
        self.assertEqual(settings.token_state.expires_at, datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc))

    def test_empty_tokens_load_as_missing(self):
        settings = SettingsStore(self.settings_path).load()
        self.assertIsNone(settings.token_state.refresh_token)
        self.assertIsNone(settings.token_state.expires_at)
        self.assertFalse(settings.token_state.has_refresh_token)

    def test_unreadable_expiration_is_ignored(self):
        self.write_settings(make_settings_document(RefreshToken="r", TokenExpiration="next tuesday"))
        with self.assertLogs('syncro_zoho.services.settings_store', level='WARNING'):
            settings = SettingsStore(self.settings_path).load()
        self.assertIsNone(settings.token_state.expires_at)

    def test_missing_file(self):
        with self.assertRaises(ConfigError):
            SettingsStore(os.path.join(self.temp_dir, "missing.json")).load()

    def test_invalid_json(self):
        with open(self.settings_path, "w", encoding="utf-8") as f:
            f.write("{not json")
        with self.assertRaises(ConfigError):
            SettingsStore(self.settings_path).load()

    def test_missing_section(self):
        document = make_settings_document()
        del document["Syncro"]
        self.write_settings(document)
        with self.assertRaises(ConfigError) as ctx:
            SettingsStore(self.settings_path).load()
        self.assertIn("Syncro", str(ctx.exception))

    def test_blank_required_value(self):
        self.write_settings(make_settings_document(ClientID="  "))
        with self.assertRaises(ConfigError) as ctx:
            SettingsStore(self.settings_path).load()
        self.assertIn("ClientID", str(ctx.exception))

    def test_save_tokens_preserves_other_fields(self):
        document = make_settings_document()
        document["ZohoBooks"]["Custom"] = "keep me"
        document["Extra"] = {"Anything": [1, 2, 3]}
        self.write_settings(document)

        expires_at = datetime(2026, 3, 1, 11, 0, 0, 123456, tzinfo=timezone.utc)
        SettingsStore(self.settings_path).save_tokens(TokenState("access-2", "refresh-2", expires_at))

        saved = self.read_settings()
        self.assertEqual(saved["ZohoBooks"]["AccessToken"], "access-2")
        self.assertEqual(saved["ZohoBooks"]["RefreshToken"], "refresh-2")
        self.assertEqual(saved["ZohoBooks"]["TokenExpiration"], "2026-03-01T11:00:00+00:00")
        self.assertEqual(saved["ZohoBooks"]["Custom"], "keep me")
        self.assertEqual(saved["ZohoBooks"]["ClientID"], "1000.CLIENT")
        self.assertEqual(saved["Extra"], {"Anything": [1, 2, 3]})
        self.assertEqual(saved["Syncro"], document["Syncro"])

    def test_saved_tokens_load_back(self):
        store = SettingsStore(self.settings_path)
        expires_at = datetime(2026, 3, 1, 11, 0, tzinfo=timezone.utc)
        store.save_tokens(TokenState("access-2", "refresh-2", expires_at))

        token_state = store.load().token_state
        self.assertEqual(token_state, TokenState("access-2", "refresh-2", expires_at))

    def test_save_tokens_write_failure(self):
        store = SettingsStore(self.settings_path)
        with patch('syncro_zoho.services.settings_store.os.replace', side_effect=OSError("disk full")):
            with self.assertRaises(PersistenceFailed):
                store.save_tokens(TokenState("a", "r", None))

        # original file untouched and no temp file left behind
        self.assertEqual(self.read_settings()["ZohoBooks"]["AccessToken"], "")
        self.assertFalse([name for name in os.listdir(self.temp_dir) if name.endswith(".tmp")])

    def test_save_tokens_missing_file(self):
        os.remove(self.settings_path)
        with self.assertRaises(PersistenceFailed):
            SettingsStore(self.settings_path).save_tokens(TokenState("a", "r", None))


class TestTokenEncryption(BaseTestCase):
    """Test cases for TokenCipher with SettingsStore"""

    def setUp(self):
        super().setUp()
        self.key = Fernet.generate_key()

    def test_tokens_are_encrypted_at_rest(self):
        store = SettingsStore(self.settings_path, TokenCipher(self.key))
        store.save_tokens(TokenState("access-3", "refresh-3", None))

        saved = self.read_settings()["ZohoBooks"]
        self.assertTrue(saved["AccessToken"].startswith("fernet:"))
        self.assertNotIn("refresh-3", saved["RefreshToken"])

        token_state = store.load().token_state
        self.assertEqual(token_state.access_token, "access-3")
        self.assertEqual(token_state.refresh_token, "refresh-3")

    def test_plaintext_tokens_still_load_with_key(self):
        self.write_settings(make_settings_document(RefreshToken="plain-refresh"))
        token_state = SettingsStore(self.settings_path, TokenCipher(self.key)).load().token_state
        self.assertEqual(token_state.refresh_token, "plain-refresh")

    def test_wrong_key_treats_token_as_missing(self):
        SettingsStore(self.settings_path, TokenCipher(self.key)).save_tokens(TokenState("a", "r", None))

        with self.assertLogs('syncro_zoho.helpers.token_cipher', level='ERROR'):
            token_state = SettingsStore(self.settings_path, TokenCipher(Fernet.generate_key())).load().token_state
        self.assertIsNone(token_state.refresh_token)

    def test_no_key_leaves_tokens_plain(self):
        cipher = TokenCipher()
        self.assertFalse(cipher.enabled)
        self.assertEqual(cipher.encrypt("abc"), "abc")
        self.assertEqual(cipher.encrypt(None), "")
        self.assertIsNone(cipher.decrypt(""))


if __name__ == '__main__':
    unittest.main()
