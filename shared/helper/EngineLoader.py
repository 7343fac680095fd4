"""Resolves engine names from configuration to implementation classes.

Engines follow a fixed layout: engine "foo" of the family with class prefix
"EmbedClient" in package "shared.clients.embed" is the class EmbedClientFoo
in module shared.clients.embed.foo.EmbedClientFoo.
"""

from shared.helper.HelperConfig import HelperConfig


def read_engine_name(helper_config: HelperConfig, env_key: str, default: str) -> str:
    """Return the configured engine, capitalised ("QDRANT" -> "Qdrant")."""
    engine = helper_config.get_string_val(env_key, default=default)
    return engine.strip().lower().capitalize()


def load_engine_class(package: str, class_prefix: str, engine: str) -> type:
    """Import the implementation class of an engine.

    Raises:
        ValueError: If the engine module or class does not exist.
    """
    class_name = f"{class_prefix}{engine}"
    try:
        module = __import__(f"{package}.{engine.lower()}.{class_name}", fromlist=[class_name])
        return getattr(module, class_name)
    except (ImportError, AttributeError) as e:
        raise ValueError(f"Unsupported {class_prefix} engine specified: '{engine}'. Error: {e}")
