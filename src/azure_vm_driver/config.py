"""Client configuration management.

Configuration is loaded from a YAML file:

    subscription_id: 00000000-0000-0000-0000-000000000000
    cert_path: ~/.azure-driver/management.pem
    management_url: https://management.core.windows.net
    poll_interval: 10
    operation_timeout: 1800

Resolution order for the file:
1. Explicit path argument
2. $AZURE_DRIVER_CONFIG environment variable
3. ~/.azure-driver/config.yaml

$AZURE_SUBSCRIPTION_ID and $AZURE_MANAGEMENT_CERT override the file values.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

try:
    import yaml
except ImportError:
    yaml = None  # type: ignore[assignment]


DEFAULT_MANAGEMENT_URL = 'https://management.core.windows.net'
DEFAULT_API_VERSION = '2014-05-01'


class ConfigError(Exception):
    """Configuration error."""


@dataclass(frozen=True)
class ApiPaths:
    """URL templates relative to the subscription root.

    Passed to the transport as one table so nothing depends on
    module-level URL constants.
    """
    operation_status: str = 'operations/{request_id}'
    hosted_services: str = 'services/hostedservices'
    hosted_service: str = 'services/hostedservices/{service}'
    certificates: str = 'services/hostedservices/{service}/certificates'
    deployments: str = 'services/hostedservices/{service}/deployments'
    deployment: str = 'services/hostedservices/{service}/deployments/{deployment}'
    delete_deployment: str = 'services/hostedservices/{service}/deployments/{deployment}?comp=media'
    role: str = 'services/hostedservices/{service}/deployments/{deployment}/roles/{role}'
    role_operations: str = (
        'services/hostedservices/{service}/deployments/{deployment}/roleinstances/{role}/Operations'
    )
    role_sizes: str = 'rolesizes'
    locations: str = 'locations'
    storage_services: str = 'services/storageservices'
    storage_service: str = 'services/storageservices/{service}'
    images: str = 'services/images'
    network_configuration: str = 'services/networking/media'


@dataclass
class ClientConfig:
    """Settings for one subscription."""
    subscription_id: str
    cert_path: Path
    management_url: str = DEFAULT_MANAGEMENT_URL
    api_version: str = DEFAULT_API_VERSION
    poll_interval: float = 10.0
    operation_timeout: float = 1800.0
    request_timeout: float = 60.0
    paths: ApiPaths = field(default_factory=ApiPaths)

    def __post_init__(self):
        if isinstance(self.cert_path, str):
            self.cert_path = Path(self.cert_path).expanduser()
        if not self.subscription_id:
            raise ConfigError("subscription_id is required")
        if self.poll_interval <= 0:
            raise ConfigError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.operation_timeout < self.poll_interval:
            raise ConfigError(
                f"operation_timeout ({self.operation_timeout}) must not be shorter "
                f"than poll_interval ({self.poll_interval})"
            )

    @property
    def base_url(self) -> str:
        """Subscription root, always ending with '/'."""
        return f"{self.management_url.rstrip('/')}/{self.subscription_id}/"


def get_config_path(path: Optional[Path] = None) -> Path:
    """Discover the configuration file."""
    if path is not None:
        return Path(path).expanduser()
    if env_path := os.environ.get('AZURE_DRIVER_CONFIG'):
        return Path(env_path).expanduser()
    return Path.home() / '.azure-driver' / 'config.yaml'


def _parse_yaml(path: Path) -> dict:
    """Parse a YAML file and return contents."""
    if yaml is None:
        raise ConfigError("PyYAML not installed. Run: pip install pyyaml")
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at top level")
    return data


def load_client_config(path: Optional[Path] = None) -> ClientConfig:
    """Load ClientConfig from YAML with environment overrides."""
    config_file = get_config_path(path)
    if not config_file.exists():
        raise ConfigError(
            f"Config file not found: {config_file}. "
            "Set AZURE_DRIVER_CONFIG or create ~/.azure-driver/config.yaml"
        )

    data = _parse_yaml(config_file)

    if subscription_id := os.environ.get('AZURE_SUBSCRIPTION_ID'):
        data['subscription_id'] = subscription_id
    if cert_path := os.environ.get('AZURE_MANAGEMENT_CERT'):
        data['cert_path'] = cert_path

    if 'cert_path' not in data:
        raise ConfigError(f"{config_file}: cert_path is required")

    known = {f.name for f in fields(ClientConfig)} - {'paths'}
    unknown = sorted(set(data) - known - {'paths'})
    if unknown:
        raise ConfigError(f"{config_file}: unknown keys: {', '.join(unknown)}")

    kwargs = {k: v for k, v in data.items() if k in known}
    if overrides := data.get('paths'):
        try:
            kwargs['paths'] = ApiPaths(**overrides)
        except TypeError as e:
            raise ConfigError(f"{config_file}: invalid paths section: {e}") from e

    try:
        return ClientConfig(**kwargs)
    except TypeError as e:
        raise ConfigError(f"{config_file}: {e}") from e
