"""Configuration model for nodeprep."""

import os

from pydantic import BaseModel, Field, ValidationError, field_validator

from nodeprep.exceptions import ConfigurationError

CONFIG_ENV_VAR = "NODEPREP_CONFIG"

# Well known master taints, see https://kubernetes.io/docs/reference/labels-annotations-taints/
DEFAULT_MASTER_TAINT_KEYS = (
    "node-role.kubernetes.io/master",
    "node-role.kubernetes.io/control-plane",
)


class NodePrepConfig(BaseModel):
    """Connection and reconciliation settings."""

    kubeconfig: str | None = None
    context: str | None = None
    master_taint_keys: list[str] = Field(default_factory=lambda: list(DEFAULT_MASTER_TAINT_KEYS))
    request_timeout: float = 30.0
    max_workers: int = 1
    batch_timeout: float | None = None

    @field_validator("master_taint_keys")
    @classmethod
    def validate_master_taint_keys(cls, v: list[str]) -> list[str]:
        """Validate the master taint key set is non-empty and has no blank keys."""
        if not v:
            raise ValueError("master_taint_keys cannot be empty")
        if any(not key for key in v):
            raise ValueError("master_taint_keys cannot contain empty keys")
        return v

    @field_validator("request_timeout")
    @classmethod
    def validate_request_timeout(cls, v: float) -> float:
        """Validate request timeout is positive."""
        if v <= 0:
            raise ValueError(f"request_timeout must be positive, got {v}")
        return v

    @field_validator("batch_timeout")
    @classmethod
    def validate_batch_timeout(cls, v: float | None) -> float | None:
        """Validate batch timeout is positive when set."""
        if v is not None and v <= 0:
            raise ValueError(f"batch_timeout must be positive, got {v}")
        return v

    @field_validator("max_workers")
    @classmethod
    def validate_max_workers(cls, v: int) -> int:
        """Validate at least one worker thread is used."""
        if v < 1:
            raise ValueError(f"max_workers must be at least 1, got {v}")
        return v

    @property
    def master_taint_key_set(self) -> frozenset[str]:
        """Master taint keys as an immutable set."""
        return frozenset(self.master_taint_keys)

    def save(self, path: str) -> None:
        """Save configuration to YAML file."""
        import yaml

        with open(path, "w") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False)

    @classmethod
    def load(cls, path: str) -> "NodePrepConfig":
        """Load configuration from YAML file.

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        import yaml

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigurationError(
                f"Configuration file not found: {path}",
                "Create the file or unset the --config option",
            )
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to read configuration file {path}: {e}")

        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Invalid configuration file {path}",
                "The top level of the file must be a mapping",
            )

        try:
            return cls(**data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(x) for x in error['loc'])}: {error['msg']}" for error in e.errors()
            )
            raise ConfigurationError(f"Invalid configuration file {path}", problems)

    @classmethod
    def from_env(cls) -> "NodePrepConfig":
        """Load configuration from the file named by NODEPREP_CONFIG, or return defaults."""
        path = os.environ.get(CONFIG_ENV_VAR)
        if path:
            return cls.load(path)
        return cls()
