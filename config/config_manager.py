"""
Configuration Manager for the Crypto Fundamentals Analyzer
Centralized configuration management with validation and environment handling
"""
from __future__ import annotations

import json
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Type

import aiofiles
import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from utils.constants import COMPONENTS, DEFAULT_WEIGHTS, WEIGHT_TOLERANCE
from utils.errors import ConfigurationError
from utils.helpers import deep_merge_dicts

logger = logging.getLogger(__name__)


class ConfigType(Enum):
    """Configuration types"""
    SCORING = "scoring"
    ANALYSIS = "analysis"
    CACHE = "cache"
    DATABASE = "database"
    PROVIDERS = "providers"
    API = "api"
    LOGGING = "logging"


def validate_weight_map(weights: Dict[str, float]) -> Dict[str, float]:
    """Weights must cover exactly the four components, be non-negative and sum to 1.0"""
    missing = set(COMPONENTS) - set(weights)
    unknown = set(weights) - set(COMPONENTS)
    if missing or unknown:
        raise ValueError(
            f"weights must define exactly {list(COMPONENTS)} "
            f"(missing={sorted(missing)}, unknown={sorted(unknown)})"
        )
    if any(w < 0 for w in weights.values()):
        raise ValueError("weights must be non-negative")
    total = sum(weights.values())
    if round(abs(total - 1.0), 9) > WEIGHT_TOLERANCE:
        raise ValueError(f"weights must sum to 1.0 (got {total:.4f})")
    return weights


class ScoringConfig(BaseModel):
    """Component weights and classification thresholds"""
    weights: Dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    green_threshold: float = 7.0
    yellow_threshold: float = 5.0

    @field_validator('weights')
    @classmethod
    def validate_weights(cls, v):
        return validate_weight_map(v)

    @model_validator(mode='after')
    def validate_thresholds(self):
        if not 0 <= self.yellow_threshold < self.green_threshold <= 10:
            raise ValueError('thresholds must satisfy 0 <= yellow < green <= 10')
        return self


class AnalysisConfig(BaseModel):
    cache_ttl: int = 1800
    provider_timeout: float = 10.0
    batch_max_concurrent: int = 3
    batch_delay: float = 2.0
    compare_min: int = 2
    compare_max: int = 10
    mock_data_variance: float = 0.15

    @field_validator('batch_max_concurrent', 'compare_min')
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError('must be positive')
        return v

    @field_validator('mock_data_variance')
    @classmethod
    def validate_variance(cls, v):
        if not 0 <= v < 1:
            raise ValueError('mock_data_variance must be in [0, 1)')
        return v


class CacheConfig(BaseModel):
    backend: str = "memory"
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[SecretStr] = None
    redis_max_connections: int = 20

    @field_validator('backend')
    @classmethod
    def validate_backend(cls, v):
        if v not in ('memory', 'redis'):
            raise ValueError("backend must be 'memory' or 'redis'")
        return v


class DatabaseConfig(BaseModel):
    """History store configuration schema"""
    enabled: bool = False
    host: str = "localhost"
    port: int = 5432
    database: str = "fundamentals"
    username: str = "analyzer"
    password: SecretStr = SecretStr("analyzer")
    pool_min_size: int = 2
    pool_max_size: int = 10
    command_timeout: int = 30


class ProvidersConfig(BaseModel):
    """External data provider endpoints and credentials"""
    use_mock_data: bool = False
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    coingecko_api_key: Optional[SecretStr] = None
    defillama_base_url: str = "https://api.llama.fi"
    etherscan_api_key: Optional[SecretStr] = None
    bscscan_api_key: Optional[SecretStr] = None
    polygonscan_api_key: Optional[SecretStr] = None
    solscan_base_url: str = "https://public-api.solscan.io"
    solscan_api_key: Optional[SecretStr] = None
    twitter_bearer_token: Optional[SecretStr] = None
    reddit_user_agent: str = "CryptoFundamentalAnalyzer/1.0"
    github_token: Optional[SecretStr] = None


class APIConfig(BaseModel):
    """HTTP API configuration schema"""
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = ["*"]


class LoggingConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "text"
    log_dir: str = "logs"
    log_outputs: List[str] = ["console", "file"]
    max_file_size: int = 10 * 1024 * 1024
    backup_count: int = 5

    @field_validator('log_level')
    @classmethod
    def validate_level(cls, v):
        level = v.upper()
        if level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError(f'unknown log level {v}')
        return level


CONFIG_SCHEMAS: Dict[ConfigType, Type[BaseModel]] = {
    ConfigType.SCORING: ScoringConfig,
    ConfigType.ANALYSIS: AnalysisConfig,
    ConfigType.CACHE: CacheConfig,
    ConfigType.DATABASE: DatabaseConfig,
    ConfigType.PROVIDERS: ProvidersConfig,
    ConfigType.API: APIConfig,
    ConfigType.LOGGING: LoggingConfig,
}


class ConfigManager:
    """
    Centralized configuration management system with:
    - Schema validation using Pydantic
    - YAML file and environment variable sources
    - Validated runtime weight changes
    """

    def __init__(self, config_path: Optional[str] = None,
                 overrides: Optional[Dict[str, Dict[str, Any]]] = None):
        self.config_path = Path(config_path) if config_path else None
        self.overrides = overrides or {}
        self.configs: Dict[ConfigType, BaseModel] = {
            config_type: schema() for config_type, schema in CONFIG_SCHEMAS.items()
        }
        self._file_config: Dict[str, Any] = {}

    async def initialize(self) -> None:
        """Load every config type: defaults, then file, then environment, then overrides"""
        self._file_config = await self._load_file()
        for config_type in ConfigType:
            self._load_config(config_type)
        logger.info("Configuration manager initialized successfully")

    async def _load_file(self) -> Dict[str, Any]:
        if not self.config_path or not self.config_path.exists():
            return {}
        try:
            async with aiofiles.open(self.config_path, 'r') as f:
                content = await f.read()
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file {self.config_path}: {e}") from e

        try:
            if self.config_path.suffix == '.json':
                data = json.loads(content)
            else:
                data = yaml.safe_load(content)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot parse config file {self.config_path}: {e}") from e

        logger.info(f"Loaded configuration file {self.config_path}")
        return data or {}

    def _load_config(self, config_type: ConfigType) -> None:
        """Merge sources for one config type and validate the result"""
        schema_class = CONFIG_SCHEMAS[config_type]
        config_data = schema_class().model_dump()

        file_data = self._file_config.get(config_type.value) or {}
        config_data = deep_merge_dicts(config_data, file_data)
        config_data.update(self._load_config_from_env(config_type))
        config_data = deep_merge_dicts(config_data, self.overrides.get(config_type.value, {}))

        self.configs[config_type] = self._validate(schema_class, config_data, config_type.value)
        logger.debug(f"Loaded {config_type.value} configuration")

    def _load_config_from_env(self, config_type: ConfigType) -> Dict[str, Any]:
        """Environment variables named SECTION_FIELD, e.g. ANALYSIS_CACHE_TTL"""
        env_data: Dict[str, Any] = {}
        schema_class = CONFIG_SCHEMAS[config_type]

        for field_name in schema_class.model_fields:
            if field_name == 'weights':
                continue
            value = os.getenv(f"{config_type.value}_{field_name}".upper())
            if value is not None and value not in ('', 'null', 'None'):
                env_data[field_name] = value

        if config_type is ConfigType.SCORING:
            weights = {}
            for component in COMPONENTS:
                value = os.getenv(f"WEIGHT_{component.upper()}")
                if value:
                    weights[component] = float(value)
            if weights:
                base = dict(self._file_config.get('scoring', {}).get('weights') or DEFAULT_WEIGHTS)
                base.update(weights)
                env_data['weights'] = base

        return env_data

    @staticmethod
    def _validate(schema_class: Type[BaseModel], data: Dict[str, Any], name: str) -> BaseModel:
        try:
            return schema_class(**data)
        except PydanticValidationError as e:
            logger.error(f"Validation error in {name} config: {e}")
            raise ConfigurationError(f"Invalid {name} configuration: {e}") from e

    def update_weights(self, weights: Dict[str, float]) -> ScoringConfig:
        """Validate and apply new component weights; on failure nothing changes"""
        current = self.get_scoring_config()
        updated = self._validate(
            ScoringConfig, {**current.model_dump(), 'weights': dict(weights)}, 'scoring'
        )
        self.configs[ConfigType.SCORING] = updated
        logger.info(f"Scoring weights updated: {updated.weights}")
        return updated

    def update_thresholds(self, green: float, yellow: float) -> ScoringConfig:
        current = self.get_scoring_config()
        updated = self._validate(
            ScoringConfig,
            {**current.model_dump(), 'green_threshold': green, 'yellow_threshold': yellow},
            'scoring',
        )
        self.configs[ConfigType.SCORING] = updated
        logger.info(f"Classification thresholds updated: green={green} yellow={yellow}")
        return updated

    def get(self, key: str, default: Any = None) -> Any:
        """Dotted lookup, e.g. 'analysis.cache_ttl'"""
        section, _, field_name = key.partition('.')
        try:
            config_obj = self.configs[ConfigType(section)]
        except ValueError:
            return default
        if not field_name:
            return config_obj
        return getattr(config_obj, field_name, default)

    def get_config(self, config_type: ConfigType) -> BaseModel:
        return self.configs[config_type]

    def get_scoring_config(self) -> ScoringConfig:
        return self.configs[ConfigType.SCORING]

    def get_analysis_config(self) -> AnalysisConfig:
        return self.configs[ConfigType.ANALYSIS]

    def get_cache_config(self) -> CacheConfig:
        return self.configs[ConfigType.CACHE]

    def get_database_config(self) -> DatabaseConfig:
        return self.configs[ConfigType.DATABASE]

    def get_providers_config(self) -> ProvidersConfig:
        return self.configs[ConfigType.PROVIDERS]

    def get_api_config(self) -> APIConfig:
        return self.configs[ConfigType.API]

    def get_logging_config(self) -> LoggingConfig:
        return self.configs[ConfigType.LOGGING]
