import logging

logger = logging.getLogger("cli")


def _normalise_key(key) -> str:
    return key.replace('_', '-') if isinstance(key, str) else key


def merge_config(base: dict, overrides: dict) -> dict:
    """
    Merge two configuration dictionaries. Nested dictionaries are merged
    recursively, all other values in ``overrides`` replace those in ``base``.
    Key names are normalised to use hyphens.
    """
    result = {_normalise_key(k): v for k, v in base.items()}
    for key, value in overrides.items():
        key = _normalise_key(key)
        current = result.get(key)
        if isinstance(value, dict):
            if not isinstance(current, dict):
                current = {}
            result[key] = merge_config(current, value)
        else:
            result[key] = value
    return result
