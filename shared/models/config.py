from typing import Literal

from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    Describes one engine-scoped environment setting a client depends on.

    The env_key is the raw key without the "{TYPE}_{ENGINE}_" prefix, e.g. "BASE_URL"
    for RAG_QDRANT_BASE_URL.

    Attributes:
        env_key (str): Raw key name of the setting.
        val_type (str): Expected value type: "string", "number", "bool" or "list".
        default (str | int | float | bool | list | None): Fallback value. None marks the setting as mandatory.
        secret (bool): Whether the value must be masked in log output (API keys).
    """

    env_key: str
    val_type: Literal["string", "number", "bool", "list"] = "string"
    default: str | int | float | bool | list | None = None
    secret: bool = False

    @property
    def is_required(self) -> bool:
        return self.default is None
