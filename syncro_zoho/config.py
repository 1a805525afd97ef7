"""
Configuration settings for the Syncro to Zoho Books invoice sync
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class"""

    # Files
    SETTINGS_FILE = os.environ.get('SETTINGS_FILE', 'appsettings.json')
    MAPPING_FILE = os.environ.get('MAPPING_FILE', 'product_mapping.csv')

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_DIR = os.environ.get('LOG_DIR', 'logs')
    LOG_CONSOLE = True

    # HTTP
    HTTP_TIMEOUT_SECONDS = float(os.environ.get('HTTP_TIMEOUT_SECONDS', 30))

    # Zoho Books
    ZOHO_ACCOUNTS_URL = os.environ.get('ZOHO_ACCOUNTS_URL', 'https://accounts.zoho.com')
    ZOHO_API_BASE_URL = os.environ.get('ZOHO_API_BASE_URL', 'https://www.zohoapis.com/books/v3')
    TOKEN_EXPIRY_MARGIN_SECONDS = int(os.environ.get('TOKEN_EXPIRY_MARGIN_SECONDS', 300))
    PAYMENT_TERMS = int(os.environ.get('PAYMENT_TERMS', 0))  # 0 = Due on Receipt

    # Syncro
    SYNCRO_DOMAIN = os.environ.get('SYNCRO_DOMAIN', 'syncromsp.com')
    CUSTOMER_PROPERTY_NAME = os.environ.get('CUSTOMER_PROPERTY_NAME', 'Zoho Books ID')
    QUICK_PAY_METHOD = os.environ.get('QUICK_PAY_METHOD', 'Quick')

    # Authorization code capture: "prompt" or "callback"
    AUTH_CODE_PROVIDER = os.environ.get('AUTH_CODE_PROVIDER', 'prompt')
    AUTH_CALLBACK_TIMEOUT_SECONDS = int(os.environ.get('AUTH_CALLBACK_TIMEOUT_SECONDS', 300))

    # Encryption Configuration
    FERNET_KEY = os.environ.get('FERNET_KEY')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class TestingConfig(Config):
    """Testing configuration"""
    DEBUG = False
    TESTING = True

    SETTINGS_FILE = 'appsettings.test.json'
    MAPPING_FILE = 'product_mapping.test.csv'
    LOG_CONSOLE = False
    HTTP_TIMEOUT_SECONDS = 5
    AUTH_CALLBACK_TIMEOUT_SECONDS = 5
    FERNET_KEY = None


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': ProductionConfig
}


def get_config(config_name=None):
    """Get configuration class by name"""
    if config_name is None:
        config_name = os.environ.get('SYNC_ENV', 'production')
    return config.get(config_name, config['default'])
