import logging
import urllib.parse

from syncro_zoho.exceptions import (
    AuthExchangeFailed,
    InvoiceCreateFailed,
    NetworkFailed,
    RefreshFailed,
    UnexpectedResponseShape,
)
from syncro_zoho.models.responses import TokenGrant, parse_created_invoice, zoho_error_message
from syncro_zoho.services.http_client import HttpClient, HttpResponse

logger = logging.getLogger(__name__)


def _describe_failure(response: HttpResponse) -> str:
    message = zoho_error_message(response.body)
    if message:
        return f"{response.status_code} {message}"
    if isinstance(response.body, dict) and response.body.get('error'):
        return f"{response.status_code} {response.body['error']}"
    return f"{response.status_code} {response.text[:500]}"


class ZohoBooks:
    """
    A class to interact with the Zoho Books API: the OAuth token endpoints
    and invoice creation.
    """

    def __init__(self, settings, http: HttpClient, accounts_url="https://accounts.zoho.com",
                 api_base_url="https://www.zohoapis.com/books/v3"):
        """
        Args:
            settings (ZohoBooksSettings): Client credentials and organization.
            http (HttpClient): Transport.
            accounts_url (str): Zoho accounts server (token endpoint host).
            api_base_url (str): Zoho Books API root.
        """
        self.settings = settings
        self.http = http
        self.token_url = f"{accounts_url.rstrip('/')}/oauth/v2/token"
        self.api_base_url = api_base_url.rstrip('/')
        self.access_token = None

    def get_authorization_url(self, state):
        """
        Generate the Zoho OAuth2 authorization URL.

        access_type=offline is what makes Zoho issue a refresh token at all;
        prompt=consent makes it issue a new one on re-authorization.

        Args:
            state (str): A unique state string to prevent CSRF attacks.

        Returns:
            str: The authorization URL.
        """
        query = urllib.parse.urlencode({
            "scope": self.settings.scope,
            "client_id": self.settings.client_id,
            "response_type": "code",
            "redirect_uri": self.settings.redirect_uri,
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        })
        separator = "&" if "?" in self.settings.authorize_uri else "?"
        return f"{self.settings.authorize_uri}{separator}{query}"

    def exchange_authorization_code(self, code) -> TokenGrant:
        """
        Exchange the authorization code for an access token and refresh token.

        Args:
            code (str): The authorization code received from Zoho.

        Returns:
            TokenGrant: Access token, refresh token and lifetime.

        Raises:
            AuthExchangeFailed: On any network, HTTP or response error.
        """
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self.settings.client_id,
            "client_secret": self.settings.secret,
            "redirect_uri": self.settings.redirect_uri,
        }

        logger.info(f"Exchanging authorization code at {self.token_url}")
        try:
            response = self.http.request("POST", self.token_url, form=data)
        except NetworkFailed as e:
            raise AuthExchangeFailed(f"Failed to get access token: {e}") from e

        if not response.ok or (isinstance(response.body, dict) and response.body.get('error')):
            raise AuthExchangeFailed(f"Failed to get access token: {_describe_failure(response)}")

        try:
            grant = TokenGrant.from_response(response.body)
        except UnexpectedResponseShape as e:
            raise AuthExchangeFailed(f"Failed to get access token: {e}") from e

        if not grant.refresh_token:
            raise AuthExchangeFailed("Zoho did not issue a refresh token - check access_type=offline")

        self.access_token = grant.access_token
        return grant

    def refresh_access_token(self, refresh_token) -> TokenGrant:
        """
        Refresh the Zoho access token using the refresh token.

        Raises:
            RefreshFailed: If the refresh token is missing or rejected.
        """
        if not refresh_token:
            raise RefreshFailed("Refresh token is required to refresh the access token.")

        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self.settings.client_id,
            "client_secret": self.settings.secret,
        }

        logger.info(f"Sending refresh token request to: {self.token_url}")
        try:
            response = self.http.request("POST", self.token_url, form=data)
        except NetworkFailed as e:
            raise RefreshFailed(f"Failed to refresh token: {e}") from e

        logger.info(f"Token refresh response status: {response.status_code}")
        if not response.ok or (isinstance(response.body, dict) and response.body.get('error')):
            raise RefreshFailed(f"Failed to refresh token: {_describe_failure(response)}")

        try:
            grant = TokenGrant.from_response(response.body)
        except UnexpectedResponseShape as e:
            raise RefreshFailed(f"Failed to refresh token: {e}") from e

        logger.info(f"Received new access token starting with: {grant.access_token[:10]}...")
        self.access_token = grant.access_token
        return grant

    def make_request(self, endpoint, method="GET", data=None, params=None) -> HttpResponse:
        """
        Make a request to the Zoho Books API with the current access token.

        Args:
            endpoint (str): The API endpoint (e.g., "invoices").
            method (str): HTTP method.
            data (dict): JSON body for POST/PUT requests.
            params (dict): Extra query parameters.

        Returns:
            HttpResponse

        Raises:
            ValueError: If no access token has been set.
            NetworkFailed: If the request never completed.
        """
        if not self.access_token:
            raise ValueError("Access token is required to make requests.")

        headers = {"Authorization": f"Zoho-oauthtoken {self.access_token}"}
        query = {"organization_id": self.settings.organization_id}
        query.update(params or {})
        url = f"{self.api_base_url}/{endpoint.lstrip('/')}"

        return self.http.request(method, url, headers=headers, params=query, json_body=data)

    def create_invoice(self, invoice_data) -> str:
        """
        Create an invoice in Zoho Books.

        Args:
            invoice_data (dict): customer_id, payment_terms and line_items.

        Returns:
            str: The Zoho Books invoice id.

        Raises:
            InvoiceCreateFailed: On network errors, error responses or an
                unexpected response body.
        """
        customer_id = invoice_data.get('customer_id')
        try:
            response = self.make_request("invoices", method="POST", data=invoice_data)
        except NetworkFailed as e:
            raise InvoiceCreateFailed(f"Error creating invoice for customer {customer_id}: {e}") from e

        error = zoho_error_message(response.body)
        if not response.ok or error:
            raise InvoiceCreateFailed(
                f"Error creating invoice for customer {customer_id}: {_describe_failure(response)}"
            )

        try:
            invoice_id = parse_created_invoice(response.body)
        except UnexpectedResponseShape as e:
            raise InvoiceCreateFailed(f"Error creating invoice for customer {customer_id}: {e}") from e

        logger.info(f"Invoice created successfully in Zoho Books: {invoice_id}")
        return invoice_id
