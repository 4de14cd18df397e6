"""Configuration management for chatbridge."""

import logging
import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import yaml

from .cost import USD_TO_SATANG
from .providers.base import BaseProvider, ProviderConfig
from .providers.registry import get_provider_class
from .tools.schema import ToolDefinition

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.config/chatbridge/config.yaml"

DEFAULT_CONFIG: Dict[str, Any] = {
    "providers": {
        "openai": {
            "enabled": False,
            "api_key": "${OPENAI_API_KEY}",
            "model": "gpt-4.1-mini",
        },
        "gemini": {
            "enabled": False,
            "api_key": "${GEMINI_API_KEY}",
            "model": "gemini-2.0-flash",
        },
    },
    "defaults": {
        "provider": "openai",
    },
    "resolver": {
        "timeout": None,
    },
    "cost": {
        "unit": int(USD_TO_SATANG),
    },
}


class ConfigManager:
    """Manage chatbridge configuration from YAML."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(
            config_path or os.getenv("CHATBRIDGE_CONFIG") or DEFAULT_CONFIG_PATH
        ).expanduser()
        self.data = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            self._create_default_config()
        return self._read_yaml()

    def _read_yaml(self) -> Dict[str, Any]:
        """Read and parse YAML file."""
        try:
            with open(self.config_path, "r") as f:
                content = yaml.safe_load(f)
                return content or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Error reading config %s: %s", self.config_path, e)
            return {}

    def _create_default_config(self) -> None:
        """Create default configuration file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w") as f:
            yaml.dump(DEFAULT_CONFIG, f, default_flow_style=False)

    def _resolve_env_var(self, value: Any) -> Any:
        """Resolve environment variable references like ${VAR_NAME}."""
        if not isinstance(value, str) or not value.startswith("${") or not value.endswith("}"):
            return value

        var_name = value[2:-1]
        return os.getenv(var_name, "")

    def get_provider_config(self, provider_name: str) -> Optional[ProviderConfig]:
        """Get configuration for a specific provider, None when disabled or keyless."""
        provider_data = self.data.get("providers", {}).get(provider_name, {})

        if not provider_data.get("enabled", False):
            return None

        api_key = self._resolve_env_var(provider_data.get("api_key", ""))
        if not api_key:
            return None

        return ProviderConfig(
            api_key=api_key,
            model=provider_data.get("model", ""),
            base_url=provider_data.get("base_url"),
            temperature=provider_data.get("temperature"),
            top_p=provider_data.get("top_p"),
            max_tokens=provider_data.get("max_tokens"),
            timeout=float(provider_data.get("timeout", 60.0)),
            cost_unit=self.get_cost_unit(),
        )

    def create_provider(
        self,
        provider_name: Optional[str] = None,
        tools: Iterable[ToolDefinition] = (),
        **kwargs,
    ) -> BaseProvider:
        """Instantiate a configured provider from the registry.

        Raises:
            KeyError: no provider is registered under that name.
            ValueError: the provider is disabled or has no API key.
        """
        name = provider_name or self.get_default_provider()
        config = self.get_provider_config(name)
        if config is None:
            raise ValueError(f"Provider '{name}' is not enabled or has no API key")
        return get_provider_class(name)(config, tools=tools, **kwargs)

    def get_default_provider(self) -> str:
        """Get the default provider name."""
        return self.data.get("defaults", {}).get("provider", "openai")

    def get_enabled_providers(self) -> list[str]:
        """Get list of enabled provider names."""
        providers = self.data.get("providers", {})
        return [name for name, config in providers.items() if config.get("enabled", False)]

    def get_resolver_timeout(self) -> Optional[float]:
        timeout = (self.data.get("resolver") or {}).get("timeout")
        return float(timeout) if timeout is not None else None

    def get_cost_unit(self) -> Decimal:
        unit = (self.data.get("cost") or {}).get("unit")
        return Decimal(str(unit)) if unit is not None else USD_TO_SATANG

    def save(self) -> None:
        """Save configuration to file."""
        with open(self.config_path, "w") as f:
            yaml.dump(self.data, f, default_flow_style=False)
