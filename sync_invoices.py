"""This module syncs unpaid Syncro invoices to Zoho Books."""
import argparse
import logging
import sys

from syncro_zoho import setup_logging
from syncro_zoho.config import get_config
from syncro_zoho.exceptions import AuthExchangeFailed, ConfigError
from syncro_zoho.helpers.token_cipher import TokenCipher
from syncro_zoho.services.auth_code_providers import CallbackCodeProvider, PromptCodeProvider
from syncro_zoho.services.http_client import HttpClient
from syncro_zoho.services.invoice_sync import InvoiceSyncService, SyncContext
from syncro_zoho.services.oauth_manager import OAuthManager
from syncro_zoho.services.product_mapping import load_product_mappings
from syncro_zoho.services.settings_store import SettingsStore
from syncro_zoho.services.syncro import Syncro
from syncro_zoho.services.zoho_books import ZohoBooks

logger = logging.getLogger('sync_invoices')


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Copy unpaid Syncro invoices to Zoho Books.")
    parser.add_argument(
        '--no-quick-pay',
        action='store_true',
        help="create the Zoho Books invoices but leave the Syncro invoices unpaid",
    )
    return parser.parse_args(argv)


def build_code_provider(app_config, redirect_uri):
    if app_config.AUTH_CODE_PROVIDER == 'callback':
        return CallbackCodeProvider(redirect_uri, timeout_seconds=app_config.AUTH_CALLBACK_TIMEOUT_SECONDS)
    if app_config.AUTH_CODE_PROVIDER != 'prompt':
        raise ConfigError(f"Unknown AUTH_CODE_PROVIDER '{app_config.AUTH_CODE_PROVIDER}' (use 'prompt' or 'callback')")
    return PromptCodeProvider()


def sync_invoices(app_config, quick_pay=True):
    """
    Run one sync.

    Raises:
        ConfigError: Settings or mapping file unusable.
        AuthExchangeFailed: No Zoho Books token could be obtained.
    """
    store = SettingsStore(app_config.SETTINGS_FILE, TokenCipher(app_config.FERNET_KEY))
    settings = store.load()
    mapping_table = load_product_mappings(app_config.MAPPING_FILE)

    http = HttpClient(timeout=app_config.HTTP_TIMEOUT_SECONDS)
    zoho_books = ZohoBooks(
        settings.zoho_books,
        http,
        accounts_url=app_config.ZOHO_ACCOUNTS_URL,
        api_base_url=app_config.ZOHO_API_BASE_URL,
    )
    syncro = Syncro(settings.syncro, http, domain=app_config.SYNCRO_DOMAIN)

    oauth = OAuthManager(
        zoho_books,
        store,
        settings.token_state,
        build_code_provider(app_config, settings.zoho_books.redirect_uri),
        margin_seconds=app_config.TOKEN_EXPIRY_MARGIN_SECONDS,
    )
    oauth.get_access_token()

    context = SyncContext(
        syncro=syncro,
        zoho_books=zoho_books,
        mapping_table=mapping_table,
        quick_pay=quick_pay,
        payment_terms=app_config.PAYMENT_TERMS,
        payment_method=app_config.QUICK_PAY_METHOD,
        customer_property_name=app_config.CUSTOMER_PROPERTY_NAME,
    )
    return InvoiceSyncService(context).run()


def main(argv=None):
    args = parse_args(argv)
    app_config = get_config()
    log_path = setup_logging(app_config)
    logger.info(f"Starting invoice sync process (quick pay: {not args.no_quick_pay}, log: {log_path})")

    try:
        outcome = sync_invoices(app_config, quick_pay=not args.no_quick_pay)
    except (ConfigError, AuthExchangeFailed) as e:
        logger.error(f"Invoice sync aborted: {e}")
        return 1

    summary = outcome.to_dict()
    logger.info(f"Invoice sync script finished execution: {summary}")
    print("Invoice sync summary:")
    for name, value in summary.items():
        print(f"  {name.replace('_', ' ')}: {value}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
