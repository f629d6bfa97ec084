"""
Global Settings for the Crypto Fundamentals Analyzer
Environment-backed settings: runtime environment, paths and provider credentials
"""

import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List

from dotenv import load_dotenv

load_dotenv()


class Environment(Enum):
    """Runtime environments"""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings:
    """Global application settings"""

    # Environment
    ENVIRONMENT = Environment(os.getenv('ENVIRONMENT', 'development'))
    DEBUG = os.getenv('DEBUG', 'false').lower() == 'true'

    # Application
    APP_NAME = "Crypto Fundamentals Analyzer"
    APP_VERSION = "1.0.0"
    APP_DESCRIPTION = "Automated fundamentals scoring for crypto assets"

    # Directories
    BASE_DIR = Path(__file__).parent.parent
    CONFIG_DIR = BASE_DIR / "config"
    LOGS_DIR = Path(os.getenv('LOG_DIR', str(BASE_DIR / "logs")))
    CONFIG_FILE = os.getenv('CONFIG_FILE', str(CONFIG_DIR / "settings.yaml"))

    # Storage
    DATABASE_URL = os.getenv('DATABASE_URL', '')
    REDIS_URL = os.getenv('REDIS_URL', '')

    # Market & on-chain APIs
    COINGECKO_API_KEY = os.getenv('COINGECKO_API_KEY', '')
    ETHERSCAN_API_KEY = os.getenv('ETHERSCAN_API_KEY', '')
    BSCSCAN_API_KEY = os.getenv('BSCSCAN_API_KEY', '')
    POLYGONSCAN_API_KEY = os.getenv('POLYGONSCAN_API_KEY', '')
    SOLSCAN_API_KEY = os.getenv('SOLSCAN_API_KEY', '')

    # Social APIs
    TWITTER_BEARER_TOKEN = os.getenv('TWITTER_BEARER_TOKEN', '')
    GITHUB_TOKEN = os.getenv('GITHUB_TOKEN', '')
    REDDIT_USER_AGENT = os.getenv('REDDIT_USER_AGENT', 'CryptoFundamentalAnalyzer/1.0')

    @classmethod
    def configured_providers(cls) -> Dict[str, bool]:
        """Which optional providers have credentials"""
        return {
            'coingecko_pro': bool(cls.COINGECKO_API_KEY),
            'etherscan': bool(cls.ETHERSCAN_API_KEY),
            'bscscan': bool(cls.BSCSCAN_API_KEY),
            'polygonscan': bool(cls.POLYGONSCAN_API_KEY),
            'solscan': bool(cls.SOLSCAN_API_KEY),
            'twitter': bool(cls.TWITTER_BEARER_TOKEN),
            'github': bool(cls.GITHUB_TOKEN),
        }

    @classmethod
    def missing_credentials(cls) -> List[str]:
        return [name for name, present in cls.configured_providers().items() if not present]

    @classmethod
    def get_environment_info(cls) -> Dict[str, Any]:
        return {
            'environment': cls.ENVIRONMENT.value,
            'debug': cls.DEBUG,
            'version': cls.APP_VERSION,
            'providers': cls.configured_providers(),
        }


settings = Settings()
