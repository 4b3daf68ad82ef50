"""
Configuration for the proof router.

Values come from, in increasing priority: built-in defaults, a ``.env`` file,
the process environment, and explicit overrides passed by the caller.
"""
import json
import logging
import os
from importlib import resources
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, SecretStr, ValidationError

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://explorer.succinct.xyz"
DEFAULT_NETWORK = "volta"

# Environment variable for each configurable field
ENV_VARS = {
    "api_base": "ROUTER_API_BASE",
    "network": "ROUTER_NETWORK",
    "ws_url": "ROUTER_WS_URL",
    "mnemonic": "ZKV_MNEMONIC",
    "demo_mode": "ROUTER_DEMO_MODE",
    "browser": "ROUTER_BROWSER",
    "http_timeout": "ROUTER_HTTP_TIMEOUT",
    "per_request_timeout": "ROUTER_REQUEST_TIMEOUT",
    "submit_timeout": "ROUTER_SUBMIT_TIMEOUT",
    "inclusion_timeout": "ROUTER_INCLUSION_TIMEOUT",
    "inter_request_delay": "ROUTER_REQUEST_DELAY",
    "wait_for_finalization": "ROUTER_WAIT_FOR_FINALIZATION",
}


class NetworkConfig:
    """Named ledger networks shipped with the package"""

    _networks_cache: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def load_networks(cls) -> Dict[str, Dict[str, Any]]:
        """
        Load the bundled network table, once per process.

        Returns:
            Mapping of network name to its settings
        """
        if cls._networks_cache is None:
            text = resources.files("proof_router").joinpath("networks.json").read_text(encoding="utf-8")
            cls._networks_cache = json.loads(text)
        return cls._networks_cache

    @classmethod
    def get_network(cls, name: str) -> Dict[str, Any]:
        """
        Get the settings of one network.

        Raises:
            ConfigurationError: If the network is unknown
        """
        networks = cls.load_networks()
        if name not in networks:
            available = ", ".join(sorted(networks))
            raise ConfigurationError(f"Unknown network '{name}'. Available networks: {available}")
        return networks[name]

    @classmethod
    def get_ws_url(cls, name: str) -> str:
        return cls.get_network(name)["ws_url"]


class RouterConfig(BaseModel):
    """Settings shared by every pipeline component"""
    api_base: str = DEFAULT_API_BASE
    network: str = DEFAULT_NETWORK
    ws_url: Optional[str] = None
    mnemonic: Optional[SecretStr] = None
    demo_mode: bool = False
    browser: Optional[str] = None
    http_timeout: float = 30.0
    per_request_timeout: float = 300.0
    submit_timeout: float = 180.0
    inclusion_timeout: float = 120.0
    inter_request_delay: float = 2.0
    wait_for_finalization: bool = True

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        dotenv_path: Optional[str] = None,
        **overrides: Any
    ) -> "RouterConfig":
        """
        Build a config from the environment.

        Args:
            env: Mapping to read instead of os.environ (skips .env loading)
            dotenv_path: Explicit .env file; by default one is searched for
            **overrides: Field values that win over the environment; None is ignored

        Returns:
            RouterConfig instance

        Raises:
            ConfigurationError: If a value cannot be parsed
        """
        if env is None:
            # Existing environment variables take precedence over the file
            load_dotenv(dotenv_path, override=False)
            env = os.environ

        values: Dict[str, Any] = {}
        for field, var in ENV_VARS.items():
            raw = env.get(var)
            if raw is not None and raw.strip() != "":
                values[field] = raw.strip()
        values.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return cls(**values)
        except ValidationError as e:
            # Never echo input values, one of them may be the mnemonic
            fields = ", ".join(str(err["loc"][0]) for err in e.errors())
            raise ConfigurationError(f"Invalid configuration for: {fields}") from None

    @property
    def network_settings(self) -> Dict[str, Any]:
        return NetworkConfig.get_network(self.network)

    def resolved_ws_url(self) -> str:
        """Node URL, falling back to the selected network's default."""
        return self.ws_url or self.network_settings["ws_url"]

    def require_mnemonic(self) -> str:
        """
        Get the secret phrase for signing.

        Raises:
            ConfigurationError: If no phrase is configured
        """
        if self.mnemonic is None or not self.mnemonic.get_secret_value().strip():
            raise ConfigurationError(
                f"{ENV_VARS['mnemonic']} is not set. Add it to the environment or a .env file"
            )
        return self.mnemonic.get_secret_value()
