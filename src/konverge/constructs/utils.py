"""
Helpers shared by the composite constructs.
"""

import re

import inflection


def env_var_name(prefix: str, key: str) -> str:
    """
    Environment variable name for a configuration key.

    ``env_var_name("CONFIG", "logLevel")`` gives ``CONFIG_LOG_LEVEL``.

    Params:
        prefix: Uppercase prefix without the trailing underscore
        key: ConfigMap key in any case style

    Returns:
        ``<PREFIX>_<KEY>`` with every non-alphanumeric character replaced
    """
    normalized = re.sub(r"[^A-Z0-9]", "_", inflection.underscore(key).upper())
    return f"{prefix}_{normalized}"


def config_map_key_ref(env_name: str, config_map_name: str, key: str) -> dict:
    return {
        "name": env_name,
        "valueFrom": {"configMapKeyRef": {"name": config_map_name, "key": key}},
    }


def add_config_env(container: dict, prefix: str, config_map_name: str, keys) -> None:
    """Reference each ConfigMap key from the container's env, skipping names already present."""
    env = container.setdefault("env", [])
    present = {entry.get("name") for entry in env}
    for key in keys:
        name = env_var_name(prefix, key)
        if name not in present:
            env.append(config_map_key_ref(name, config_map_name, key))
            present.add(name)
