"""
Inkwell core settings provider
"""

import os
import json
import logging
from typing import Any, Dict, List, Optional, Tuple, Type

from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from .schemas import config


CONFIG_PATHS: List[str] = ["config.json", os.path.join("..", "config.json")]
"""
list of search paths for the config file, can be overwritten by the env variable ``CONFIG_PATH``
"""

if os.environ.get("CONFIG_PATH"):
    CONFIG_PATHS = [os.environ.get("CONFIG_PATH")]

logger = logging.getLogger(__name__)


def get_db_from_env(db_override: Optional[str] = None) -> Optional[str]:
    if db_override:
        return db_override
    return os.environ.get("DATABASE_CONNECTION", os.environ.get("DATABASE__CONNECTION", None))


def find_config_file() -> Optional[str]:
    for path in CONFIG_PATHS:
        if os.path.exists(path):
            return path


def read_settings_from_file() -> Dict[str, Any]:
    """
    Read the first config file found in the search paths (or return an empty mapping)
    """

    path = find_config_file()
    if path is None:
        logger.debug(f"No config file found in {CONFIG_PATHS!r}, using defaults only.")
        return {}
    with open(path, "r", encoding="UTF-8") as file:
        content = json.load(file)
    if not isinstance(content, dict):
        raise ValueError(f"Config file {path!r} does not contain a JSON object")
    return content


class Settings(BaseSettings, config.CoreConfig):
    """
    Inkwell core settings

    Do not change most of the settings at runtime, since this might lead to unspecified
    behavior. Always restart the server after changing the config file. But note that
    there are some parts (especially the server config and the database config), which
    might get overwritten during initialization (via command-line arguments) or during
    unit testing (where e.g. some server settings will be ignored completely).
    """

    model_config = SettingsConfigDict(env_nested_delimiter="__", env_file=".env", extra="ignore")

    @classmethod
    def settings_customise_sources(
            cls,
            settings_cls: Type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,
            file_secret_settings: PydanticBaseSettingsSource
    ) -> Tuple[Any, ...]:
        return env_settings, dotenv_settings, read_settings_from_file, init_settings


def store_configuration(conf: Optional[config.CoreConfig] = None, path: Optional[str] = None) -> config.CoreConfig:
    p = path or os.path.abspath(CONFIG_PATHS[0])
    conf = conf or get_default_core_config(get_db_from_env())
    with open(p, "w") as f:
        json.dump(conf.model_dump(), f, indent=4)
    logger.info(f"A new config file has been created as {p!r}.")
    return conf


def get_default_core_config(database_override: Optional[str] = None) -> config.CoreConfig:
    c = config.CoreConfig()
    if database_override:
        c.database.connection = database_override
    return c


def get_default_config() -> Dict[str, Any]:
    return get_default_core_config().model_dump()
