"""TV adapters - one per protocol behind the shared TVController contract."""

from tv_remote.adapters.android import AndroidAdapter
from tv_remote.adapters.base import TVController
from tv_remote.adapters.factory import build_config, create_adapter, parse_tv_type
from tv_remote.adapters.lg import LGAdapter
from tv_remote.adapters.samsung import SamsungAdapter

__all__ = [
    "AndroidAdapter",
    "LGAdapter",
    "SamsungAdapter",
    "TVController",
    "build_config",
    "create_adapter",
    "parse_tv_type",
]
