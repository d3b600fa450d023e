"""Base model for configuration and stored run data."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Immutable model rejecting unknown fields.

    Unknown keys in a config file or a results file are reported instead of
    silently dropped.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")
