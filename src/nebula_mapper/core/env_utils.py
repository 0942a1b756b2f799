#!/usr/bin/env python3
"""
Environment lookups for compiler defaults.

Values may come from .env files edited on Windows, so trailing CR/LF and
surrounding whitespace are removed before they are interpreted.
"""

import os
import logging
from typing import Optional

logger = logging.getLogger(__name__)

TRUE_VALUES = frozenset({"true", "1", "yes", "on"})
FALSE_VALUES = frozenset({"false", "0", "no", "off", ""})


def getenv_clean(key: str, default: str = None, strip: bool = True) -> Optional[str]:
    """Read an environment variable, stripping whitespace and line endings.

    ``strip=False`` returns the raw value, for settings such as separators
    where whitespace is meaningful.
    """
    raw_value = os.getenv(key, default)
    if raw_value is None or not strip:
        return raw_value

    cleaned = raw_value.strip()
    if cleaned != raw_value:
        logger.warning(f"Stripped whitespace from {key}: {raw_value!r} -> {cleaned!r}")
    return cleaned


def getenv_bool(key: str, default: bool = False) -> bool:
    """Read a yes/no flag; unrecognised values keep the default."""
    value = getenv_clean(key)
    if value is None:
        return default

    flag = value.lower()
    if flag in TRUE_VALUES:
        return True
    if flag in FALSE_VALUES:
        return False
    logger.warning(f"Ignoring {key}={value!r}: expected a boolean, using {default}")
    return default


def getenv_int(key: str, default: int, minimum: Optional[int] = None) -> int:
    """Read an integer setting.

    Args:
        key: Environment variable name
        default: Used when the variable is unset, not an integer or too small
        minimum: Optional lower bound

    Returns:
        Integer value
    """
    value = getenv_clean(key)
    if value is None:
        return default

    try:
        number = int(value)
    except ValueError:
        logger.warning(f"Ignoring {key}={value!r}: not an integer, using {default}")
        return default

    if minimum is not None and number < minimum:
        logger.warning(f"Ignoring {key}={number}: below minimum {minimum}, using {default}")
        return default
    return number
