"""Maps a TV type discriminator to its adapter and config model."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from tv_remote.adapters.android import AndroidAdapter
from tv_remote.adapters.base import TVController
from tv_remote.adapters.lg import LGAdapter
from tv_remote.adapters.samsung import SamsungAdapter
from tv_remote.structs import AndroidConfig, LGConfig, SamsungConfig, TVConfigBase, TVType

ADAPTERS: dict[TVType, type[TVController[Any]]] = {
    TVType.SAMSUNG: SamsungAdapter,
    TVType.LG: LGAdapter,
    TVType.ANDROID: AndroidAdapter,
}

CONFIG_MODELS: dict[TVType, type[TVConfigBase]] = {
    TVType.SAMSUNG: SamsungConfig,
    TVType.LG: LGConfig,
    TVType.ANDROID: AndroidConfig,
}


def parse_tv_type(tv_type: TVType | str) -> TVType:
    try:
        return TVType(str(tv_type).strip().lower())
    except ValueError:
        msg = f"Unknown TV type: {tv_type}"
        raise ValueError(msg) from None


def build_config(tv_type: TVType | str, data: Mapping[str, Any]) -> TVConfigBase:
    """Build the config model for `tv_type` from a stored blob or CLI overrides.

    Raises:
        ValueError: Unknown TV type, or the data does not validate
                    (pydantic's ValidationError is a ValueError)
    """
    model = CONFIG_MODELS[parse_tv_type(tv_type)]
    return model.model_validate(dict(data))


def create_adapter(tv_type: TVType | str, config: TVConfigBase | Mapping[str, Any], **kwargs: Any) -> TVController[Any]:
    """
    Instantiate the adapter for `tv_type`.

    Args:
        tv_type: TVType or its string value
        config: Config model, or a mapping that is validated into one
        **kwargs: Forwarded to the adapter (store, connection_factory, timeouts)

    Raises:
        ValueError: Unknown TV type or invalid config
    """
    kind = parse_tv_type(tv_type)
    model = CONFIG_MODELS[kind]
    if isinstance(config, Mapping):
        config = build_config(kind, config)
    elif not isinstance(config, model):
        msg = f"{kind.value} adapter needs a {model.__name__}, got {type(config).__name__}"
        raise ValueError(msg)
    return ADAPTERS[kind](config, **kwargs)


__all__ = ["ADAPTERS", "CONFIG_MODELS", "build_config", "create_adapter", "parse_tv_type"]
