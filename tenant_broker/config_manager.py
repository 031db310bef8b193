"""
Configuration Management for the Tenant Broker

This module provides centralized configuration management with validation
and environment variable handling.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import colorlog
from dotenv import load_dotenv

from .address import DEFAULT_PORT, SslPolicy, resolve_address
from .exceptions import InvalidConfigurationError, MissingConfigurationError
from .handle import Handle

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def _set_http_log_level(log_level: str) -> None:
    """Set log levels for HTTP and SDK loggers to reduce noise."""
    http_loggers = [
        "openstack",
        "openstack.config",
        "keystoneauth",
        "keystoneauth.session",
        "stevedore",
        "urllib3",
        "urllib3.connectionpool",
        "requests.packages.urllib3",
        "http.client",
    ]
    # HTTP logging should only appear at DEBUG level
    target_level = logging.DEBUG if log_level == "DEBUG" else logging.WARNING
    for name in http_loggers:
        logging.getLogger(name).setLevel(target_level)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise InvalidConfigurationError(
            f"{name} must be an integer, got {value!r}", cause=exc
        ) from exc


@dataclass
class ConnectionConfig:
    """Configuration for the identity endpoint and credentials."""

    username: str = field(default_factory=lambda: os.getenv("TB_USERNAME", ""))
    password: str = field(default_factory=lambda: os.getenv("TB_PASSWORD", ""))
    host: str = field(default_factory=lambda: os.getenv("TB_HOST", ""))
    port: int = field(default_factory=lambda: _env_int("TB_PORT", DEFAULT_PORT))
    api_version: str = field(
        default_factory=lambda: os.getenv("TB_API_VERSION", "v2")
    )
    security_protocol: str = field(
        default_factory=lambda: os.getenv(
            "TB_SECURITY_PROTOCOL", SslPolicy.NON_SSL.value
        )
    )
    region: Optional[str] = field(default_factory=lambda: os.getenv("TB_REGION"))
    ssl_ca_file: Optional[str] = field(
        default_factory=lambda: os.getenv("TB_SSL_CA_FILE")
    )
    ssl_ca_path: Optional[str] = field(
        default_factory=lambda: os.getenv("TB_SSL_CA_PATH")
    )
    domain_id: Optional[str] = field(default_factory=lambda: os.getenv("TB_DOMAIN_ID"))

    def __post_init__(self) -> None:
        """Validate connection configuration."""
        if self.port < 1:
            raise InvalidConfigurationError(
                "Port must be a positive integer", config_section="connection"
            )
        valid_policies = [policy.value for policy in SslPolicy]
        if self.security_protocol not in valid_policies:
            raise InvalidConfigurationError(
                f"Security protocol must be one of: {valid_policies}",
                config_section="connection",
            )

    def validate_credentials(self) -> None:
        """Ensure the values needed to open a connection are present."""
        missing = [
            env
            for env, value in (
                ("TB_USERNAME", self.username),
                ("TB_PASSWORD", self.password),
                ("TB_HOST", self.host),
            )
            if not value
        ]
        if missing:
            raise MissingConfigurationError(
                "Connection settings are incomplete", missing_keys=missing
            )

    def extra_options(self) -> Dict[str, Any]:
        """Extra handle options (region, CA material, domain) that are set."""
        options = {
            "region": self.region,
            "ssl_ca_file": self.ssl_ca_file,
            "ssl_ca_path": self.ssl_ca_path,
            "domain_id": self.domain_id,
        }
        return {key: value for key, value in options.items() if value}

    def get_auth_url(self) -> str:
        """Identity endpoint URL for logging (contains no credentials)."""
        return resolve_address(
            self.host or "<unset>", self.port, self.security_protocol
        )


@dataclass
class ProcessingConfig:
    """Configuration for tenant fan-out behavior."""

    max_concurrency: int = field(
        default_factory=lambda: _env_int("TB_MAX_CONCURRENCY", 5)
    )

    def __post_init__(self) -> None:
        """Validate processing configuration."""
        if self.max_concurrency < 1:
            raise InvalidConfigurationError(
                "Max concurrency must be at least 1", config_section="processing"
            )


@dataclass
class LoggingConfig:
    """Configuration for logging behavior."""

    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    format: str = field(
        default_factory=lambda: os.getenv(
            "LOG_FORMAT", "%(log_color)s%(levelname)s:%(name)s:%(message)s"
        )
    )
    file_output: Optional[str] = field(default_factory=lambda: os.getenv("LOG_FILE"))

    def __post_init__(self) -> None:
        """Validate logging configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            raise InvalidConfigurationError(
                f"Log level must be one of: {valid_levels}", config_section="logging"
            )
        self.level = self.level.upper()

    def get_log_level(self) -> int:
        """Convert string log level to logging constant."""
        return int(getattr(logging, self.level))


@dataclass
class BrokerConfig:
    """Main configuration class that aggregates all configuration sections."""

    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_environment(
        cls,
        host: Optional[str] = None,
        port: Optional[int] = None,
        security_protocol: Optional[str] = None,
        max_concurrency: Optional[int] = None,
        log_level: Optional[str] = None,
    ) -> "BrokerConfig":
        """
        Create configuration from environment variables.

        Args:
            host: Optional identity endpoint host override
            port: Optional port override
            security_protocol: Optional SSL policy override
            max_concurrency: Optional max concurrent tenant calls
            log_level: Optional log level override

        Returns:
            BrokerConfig: Configured instance
        """
        config = cls()

        if host is not None:
            config.connection.host = host
        if port is not None:
            config.connection.port = port
        if security_protocol is not None:
            config.connection.security_protocol = security_protocol
        if max_concurrency is not None:
            config.processing.max_concurrency = max_concurrency
        if log_level is not None:
            config.logging.level = log_level

        return config

    def validate_all(self) -> None:
        """Validate all configuration sections."""
        try:
            self.connection.__post_init__()
            self.processing.__post_init__()
            self.logging.__post_init__()
            logger.info("✅ Configuration validation successful")
        except Exception as e:
            logger.exception(f"❌ Configuration validation failed: {e}")
            raise

    def create_handle(self, **kwargs: Any) -> Handle:
        """
        Build a Handle from the connection section.

        Raises:
            MissingConfigurationError: If username, password or host is unset
        """
        self.connection.validate_credentials()
        return Handle(
            self.connection.username,
            self.connection.password,
            self.connection.host,
            self.connection.port,
            self.connection.api_version,
            self.connection.security_protocol,
            self.connection.extra_options(),
            **kwargs,
        )

    def log_configuration_summary(self) -> None:
        """Log a summary of the current configuration (without sensitive data)."""
        logger.info("=" * 60)
        logger.info("🔧 TENANT BROKER CONFIGURATION")
        logger.info("=" * 60)
        logger.info(f"🔑 User: {self.connection.username or 'Not configured'}")
        logger.info(f"🌐 Identity endpoint: {self.connection.get_auth_url()}")
        logger.info(f"   - API Version: {self.connection.api_version}")
        logger.info(f"   - Security Protocol: {self.connection.security_protocol}")
        logger.info(f"   - Region: {self.connection.region or 'Default'}")
        logger.info("⚙️  Processing:")
        logger.info(f"   - Max Concurrency: {self.processing.max_concurrency}")
        logger.info(f"📝 Logging Level: {self.logging.level}")
        if self.logging.file_output:
            logger.info(f"📄 Log File: {self.logging.file_output}")
        logger.info("=" * 60)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for serialization."""
        return {
            "connection": {
                "username": self.connection.username,
                "host": self.connection.host,
                "port": self.connection.port,
                "api_version": self.connection.api_version,
                "security_protocol": self.connection.security_protocol,
                "region": self.connection.region,
                "ssl_ca_file": self.connection.ssl_ca_file,
                "ssl_ca_path": self.connection.ssl_ca_path,
                "domain_id": self.connection.domain_id,
                # Don't include password in serialization
            },
            "processing": {
                "max_concurrency": self.processing.max_concurrency,
            },
            "logging": {
                "level": self.logging.level,
                "file_output": self.logging.file_output,
            },
        }


def setup_logging(config: LoggingConfig) -> None:
    """
    Setup logging configuration based on config.
    """
    _set_http_log_level(config.level.upper())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(config.get_log_level())

    console_handler = colorlog.StreamHandler()
    console_handler.setFormatter(colorlog.ColoredFormatter(config.format))
    root_logger.addHandler(console_handler)

    if config.file_output:
        file_handler = logging.FileHandler(config.file_output)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(levelname)s:%(name)s:%(message)s")
        )
        root_logger.addHandler(file_handler)

    logger.info(
        f"📝 Logging configured: level={config.level}, file={config.file_output or 'console'}"
    )


def create_config_from_env(
    host: Optional[str] = None,
    port: Optional[int] = None,
    security_protocol: Optional[str] = None,
    max_concurrency: Optional[int] = None,
    log_level: Optional[str] = None,
) -> BrokerConfig:
    """
    Factory function to create and validate configuration from environment.

    Returns:
        BrokerConfig: Validated configuration instance

    Raises:
        InvalidConfigurationError: If configuration is invalid
    """
    config = BrokerConfig.from_environment(
        host, port, security_protocol, max_concurrency, log_level
    )
    config.validate_all()
    return config
