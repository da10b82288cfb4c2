"""
This module provides core utilities for configuration and model output handling.

It includes functions for:
1.  **Loading YAML files**: Safely loads and parses YAML files with detailed
    error handling (used for configurations and profile files).
2.  **Cleaning model output**: Removes the Markdown code fence that language
    models often wrap around JSON, even when told not to.
3.  **Parsing model output**: Turns the cleaned text into a JSON object.
"""

import json
import logging
import re
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

# Opening fence: three backticks, an optional language tag, an optional newline.
_LEADING_FENCE_RE = re.compile(r"\A```[\w+-]*[ \t]*\r?\n?")
_TRAILING_FENCE_RE = re.compile(r"(?:\r?\n)?[ \t]*```\Z")


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Loads a YAML configuration file with robust error handling.

    Args:
        config_path: The path to the YAML file.

    Returns:
        A dictionary containing the configuration, empty if the file is empty.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If the YAML file is invalid or cannot be parsed.
        RuntimeError: For other unexpected errors during file reading.
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
            return {} if config is None else config
    except FileNotFoundError:
        logger.error(f"Configuration file not found at {config_path}")
        raise
    except yaml.YAMLError as e:
        logger.error(f"Error parsing YAML file '{config_path}': {e}")
        raise ValueError(f"Invalid YAML in {config_path}") from e
    except Exception as e:
        logger.error(f"Error reading configuration file '{config_path}': {e}")
        raise RuntimeError(f"Could not read {config_path}") from e


def strip_code_fences(text: str) -> str:
    """
    Removes a surrounding Markdown code fence from a model response.

    Both a bare fence and a fence with a language tag (e.g. ```json) are
    accepted. Text without a fence is returned trimmed but otherwise as-is.

    Args:
        text: The raw text returned by the language model.

    Returns:
        The trimmed text with at most one leading and one trailing fence removed.
    """
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _LEADING_FENCE_RE.sub("", cleaned, count=1)
        cleaned = _TRAILING_FENCE_RE.sub("", cleaned, count=1)
    return cleaned.strip()


def parse_analysis_text(text: str) -> Dict[str, Any]:
    """
    Parses a model response into a JSON object after stripping code fences.

    Args:
        text: The raw text returned by the language model.

    Returns:
        The decoded JSON object.

    Raises:
        ValueError: If the text is not valid JSON or is not a JSON object.
            (`json.JSONDecodeError` is a subclass of ValueError.)
    """
    data = json.loads(strip_code_fences(text))
    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a JSON object, got {type(data).__name__} instead."
        )
    return data
