"""Interview relay service.

Importing the package sets up the ``relay`` logger tree. Each component logs
to its own child so its verbosity can be tuned separately, e.g.
``RELAY_STREAM_LOG_LEVEL=DEBUG`` to trace frame handling only.
"""
import logging
import os

LOG_FORMAT = "[RELAY][%(levelname)s][%(name)s] %(message)s"

# child logger -> env var overriding its level
COMPONENT_LOGGERS = {
    "relay.api": "RELAY_API_LOG_LEVEL",
    "relay.llm": "RELAY_LLM_LOG_LEVEL",
    "relay.store": "RELAY_STORE_LOG_LEVEL",
    "relay.stream": "RELAY_STREAM_LOG_LEVEL",
}


def _level(name, default: int) -> int:
    if not name:
        return default
    value = getattr(logging, name.strip().upper(), None)
    return value if isinstance(value, int) else default


def configure_logging(env=None) -> None:
    env = os.environ if env is None else env
    root_level = _level(env.get("RELAY_LOG_LEVEL"), logging.INFO)
    root = logging.getLogger("relay")
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(root_level)

    for logger_name, env_name in COMPONENT_LOGGERS.items():
        # NOTSET: the child follows the root level
        logging.getLogger(logger_name).setLevel(_level(env.get(env_name), logging.NOTSET))


configure_logging()
