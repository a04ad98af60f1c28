"""Handles loading and formatting of user-facing messages from templates."""

import json
import logging
import os
from typing import Any, Dict, Optional

from userdir.config import get_config_value

logger = logging.getLogger(__name__)

MESSAGE_TEMPLATES: Dict[str, Any] = {}


def load_message_templates(path: Optional[str] = None) -> None:
    """
    Loads message templates from the JSON file specified in the configuration.
    Called once on import; call again to reload from a different file.
    """
    global MESSAGE_TEMPLATES
    templates_file_path = path or get_config_value(
        "message_settings.templates_file", "message_templates.json"
    )

    # A relative path is tried from the working directory first, then next to this package
    possible_paths = [
        templates_file_path,
        os.path.join(os.path.dirname(__file__), templates_file_path),
    ]

    loaded_path = None
    for path_option in possible_paths:
        abs_path = os.path.abspath(path_option)
        if os.path.exists(abs_path):
            loaded_path = abs_path
            break

    if not loaded_path:
        logger.error(
            f"Message templates file could not be found (tried {possible_paths}). Messaging system will be impaired."
        )
        MESSAGE_TEMPLATES = {}
        return

    try:
        with open(loaded_path, "r", encoding="utf-8") as f:
            MESSAGE_TEMPLATES = json.load(f)
        logger.debug(f"Successfully loaded message templates from: {loaded_path}")
    except json.JSONDecodeError as e:
        logger.error(
            f"Error decoding JSON from message templates file {loaded_path}: {e}. Using empty templates."
        )
        MESSAGE_TEMPLATES = {}
    except OSError as e:
        logger.error(
            f"Unexpected error loading message templates from {loaded_path}: {e}. Using empty templates.",
            exc_info=True,
        )
        MESSAGE_TEMPLATES = {}


def get_message(key: str, default: Optional[str] = None, **kwargs: Any) -> str:
    """
    Retrieves a message template by its dot-separated key, formats it with kwargs,
    and returns the formatted string.

    Example: get_message("errors.list_load_failed")
             get_message("directory.page_status", page=1, total_pages=2)
    """
    if not MESSAGE_TEMPLATES:
        logger.warning(
            f"Attempted to get message for key '{key}' but templates are not loaded."
        )
        return default if default is not None else f"<Missing Template: {key}>"

    value: Any = MESSAGE_TEMPLATES
    try:
        for k in key.split("."):
            if isinstance(value, dict):
                value = value[k]
            else:
                raise KeyError(k)

        if not isinstance(value, str):
            logger.warning(
                f"Template value for key '{key}' is not a string: {type(value)}. Returning as is or default."
            )
            return str(value) if default is None else default

        return value.format(**kwargs)
    except KeyError:
        logger.warning(
            f"Message template key '{key}' not found. Returning default or placeholder."
        )
        return default if default is not None else f"<Missing Template: {key}>"
    except (IndexError, ValueError) as e:
        logger.error(f"Error formatting message for key '{key}' with args {kwargs}: {e}")
        return default if default is not None else f"<Error Formatting Template: {key}>"


if __name__ != "__main__":
    load_message_templates()
