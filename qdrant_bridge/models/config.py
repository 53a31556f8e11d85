from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    A single environment setting a client needs before it can be used.

    Attributes:
        env_key (str): The raw key, without the "<CLIENT_TYPE>_<ENGINE>_" prefix (e.g. "HOST").
        val_type (str): The expected type of the value. Supported types are "string", "number", "bool" and "list".
        default (str | int | bool | list | None): Value used when the variable is not set. None marks the setting as required.
    """

    env_key: str
    val_type: str
    default: str | int | bool | list | None = None
