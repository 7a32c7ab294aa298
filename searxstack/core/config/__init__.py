from searxstack.core.config.manager import ConfigManager, load_config
from searxstack.core.config.models import StackConfig, VolumeSpec
from searxstack.core.config.paths import StackFsPaths

__all__ = ["ConfigManager", "StackConfig", "StackFsPaths", "VolumeSpec", "load_config"]
