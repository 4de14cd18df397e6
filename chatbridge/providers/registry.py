"""Name -> provider class registry.

Provider classes register with ``@register_provider``. ``discover_providers``
imports every provider module of this package; a module that is already
imported is not reloaded, its decorated classes are registered again from the
module namespace, so class identity survives ``clear_registry()``.
"""

import importlib
import pkgutil
from typing import Dict, Iterator, Type

from .base import BaseProvider

_REGISTRY: Dict[str, Type[BaseProvider]] = {}

_PROVIDER_NAME_ATTR = "__provider_name__"
_INFRASTRUCTURE_MODULES = frozenset({"base", "registry", "response"})


def register_provider(name: str):
    """Register a ``BaseProvider`` subclass under ``name``.

    Usage:
        @register_provider("gemini")
        class GeminiProvider(BaseProvider):
            ...
    """
    def decorator(cls: Type[BaseProvider]) -> Type[BaseProvider]:
        if not (isinstance(cls, type) and issubclass(cls, BaseProvider)):
            raise TypeError(f"{cls!r} must be a subclass of BaseProvider")
        setattr(cls, _PROVIDER_NAME_ATTR, name)
        _REGISTRY[name] = cls
        return cls
    return decorator


def _provider_modules() -> Iterator[str]:
    package = importlib.import_module(__package__)
    for info in pkgutil.iter_modules(package.__path__):
        if info.name not in _INFRASTRUCTURE_MODULES:
            yield f"{__package__}.{info.name}"


def discover_providers() -> None:
    """Import all provider modules and register their decorated classes."""
    for module_name in _provider_modules():
        module = importlib.import_module(module_name)
        for obj in vars(module).values():
            if not isinstance(obj, type) or obj.__module__ != module_name:
                continue
            # Only the class the decorator ran on, not its subclasses
            name = vars(obj).get(_PROVIDER_NAME_ATTR)
            if name is not None:
                _REGISTRY.setdefault(name, obj)


def get_registry() -> Dict[str, Type[BaseProvider]]:
    """Snapshot of the registry."""
    return dict(_REGISTRY)


def get_provider_class(name: str) -> Type[BaseProvider]:
    """Look up a provider class, discovering providers when the name is unknown.

    Raises:
        KeyError: no provider module registers ``name``.
    """
    if name not in _REGISTRY:
        discover_providers()
    try:
        return _REGISTRY[name]
    except KeyError:
        raise KeyError(f"Unknown provider: {name}") from None


def find_provider_for_model(model: str) -> Type[BaseProvider]:
    """Return the first registered provider whose rate table lists ``model``.

    Raises:
        KeyError: no provider prices ``model``.
    """
    discover_providers()
    for provider_cls in _REGISTRY.values():
        if provider_cls.is_model_supported(model):
            return provider_cls
    raise KeyError(f"No provider serves model: {model}")


def clear_registry() -> None:
    _REGISTRY.clear()
