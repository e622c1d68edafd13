"""Configuration package (Facade).

This package acts as a small *Facade* over the underlying configuration modules.
Callers import config types from a single, stable path instead of the module that
defines them:

	from appwrite_setup.services.config import AppwriteConfig, SetupConfig

Both types are built once at process start (``from_env``) and passed by reference;
nothing re-reads the environment mid-run.
"""

from appwrite_setup.services.config.appwrite_config import AppwriteConfig
from appwrite_setup.services.config.setup_config import PropagationStrategy, SetupConfig

__all__ = ["AppwriteConfig", "PropagationStrategy", "SetupConfig"]
