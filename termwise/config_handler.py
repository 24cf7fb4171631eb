# termwise/config_handler.py

import os
import sys
import json
import re
import logging
from typing import Any, Dict, Optional

# --- Module-specific logger ---
logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "default_config.json"
USER_CONFIG_FILENAME = "user_config.json"

_COMMENT_PATTERN = re.compile(r'//.*?$|/\*.*?\*/', re.DOTALL | re.MULTILINE)


def load_jsonc_file(filepath: str) -> Optional[Dict[str, Any]]:
    """
    Loads a JSON file that may contain single-line (//) and multi-line (/* */) comments.

    Args:
        filepath (str): The full path to the .jsonc or .json file.

    Returns:
        Optional[Dict[str, Any]]: A dictionary with the file's contents,
                                  or None if the file is not found or cannot be parsed.
    """
    if not os.path.exists(filepath):
        logger.info(f"Configuration file not found at: {filepath}")
        return None

    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            file_content = f.read()

        # Comment markers inside string values (e.g. "http://...") are kept:
        # only a '//' that is not preceded by ':' is treated as a comment.
        content_without_comments = re.sub(_COMMENT_PATTERN, _strip_comment, file_content)
        return json.loads(content_without_comments)

    except json.JSONDecodeError as e:
        logger.error(f"Error decoding JSON from {filepath}: {e}", exc_info=True)
        print(f"❌ Error: Could not parse the configuration file at {filepath}. Please check for syntax errors.", file=sys.stderr)
        return None
    except IOError as e:
        logger.error(f"Error reading file {filepath}: {e}", exc_info=True)
        print(f"❌ Error: Could not read the file at {filepath}.", file=sys.stderr)
        return None


def _strip_comment(match: re.Match) -> str:
    start = match.start()
    if match.group(0).startswith('//') and start > 0 and match.string[start - 1] == ':':
        return match.group(0)
    return ''


def save_json_file(filepath: str, data: Any) -> bool:
    """
    Saves data to a file in standard JSON format.

    Args:
        filepath (str): The full path where the file will be saved.
        data: The JSON-serializable data to save.

    Returns:
        bool: True if saving was successful, False otherwise.
    """
    try:
        # Ensure the directory exists before writing
        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, sort_keys=True)
        logger.info(f"Successfully saved data to {filepath}")
        return True
    except IOError as e:
        logger.error(f"Error saving data to {filepath}: {e}", exc_info=True)
        print(f"❌ Error: Could not write to the file at {filepath}.", file=sys.stderr)
        return False
    except TypeError as e:
        logger.error(f"Data for {filepath} is not serializable: {e}", exc_info=True)
        print("❌ Error: The data provided could not be converted to JSON.", file=sys.stderr)
        return False


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """ Helper function to recursively merge dictionaries. """
    merged = base.copy()
    for key, value in override.items():
        if isinstance(value, dict) and key in merged and isinstance(merged[key], dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_configuration(config_dir: str) -> Dict[str, Any]:
    """
    Loads configuration from the default and user JSONC files in config_dir.

    The default file is mandatory; the user file is optional and deep-merged
    on top of it.

    Raises:
        FileNotFoundError: If the default configuration is missing or unparsable.
    """
    default_config_path = os.path.join(config_dir, DEFAULT_CONFIG_FILENAME)
    user_config_path = os.path.join(config_dir, USER_CONFIG_FILENAME)

    base_config = load_jsonc_file(default_config_path)
    if base_config is None:
        error_msg = f"CRITICAL ERROR: Default configuration file not found or failed to parse at '{default_config_path}'. Application cannot start."
        logger.critical(error_msg)
        raise FileNotFoundError(error_msg)
    logger.info(f"Successfully loaded base configuration from {default_config_path}")

    user_settings = load_jsonc_file(user_config_path)
    if user_settings:
        logger.info(f"Loaded and merged user configurations from {user_config_path}")
        return merge_configs(base_config, user_settings)

    logger.info(f"{user_config_path} not found or is invalid. No user configuration overrides applied.")
    return base_config
