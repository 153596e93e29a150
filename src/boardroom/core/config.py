"""
boardroom.core.config - Configuration Management
==================================================

Configuration can be loaded from multiple sources with the following
priority (highest first):

    1. Explicit constructor arguments
    2. Environment variables (prefixed with BOARDROOM_)
    3. YAML configuration file (boardroom.yaml)
    4. Default values defined in the models below

Architecture Context:
    The top-level BoardroomConfig is created once and passed down:

        BoardroomConfig
            ├── RetryConfig           → ErrorHandler (RetryPolicy)
            ├── CircuitBreakerConfig  → ErrorHandler (per-agent breakers)
            ├── DispatchConfig        → Dispatcher (workers, concurrency)
            ├── CapabilityConfig      → LLM provider → Agent Runtime
            └── default_failure_policy → WorkflowTracker

Environment Variables:
    BOARDROOM_LOG_LEVEL=DEBUG
    BOARDROOM_RETRY__MAX_ATTEMPTS=5
    BOARDROOM_DISPATCH__WORKERS_PER_ORGANIZATION=2
    BOARDROOM_CAPABILITY__PROVIDER=mock
    BOARDROOM_DEFAULT_FAILURE_POLICY=best-effort
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from boardroom.core.enums import FailurePolicy
from boardroom.core.exceptions import ConfigurationError


# =============================================================================
# Retry Configuration
# =============================================================================
# Bounded attempts with an exponential backoff window. ``max_attempts``
# counts every execution, the first one included: max_attempts=2 means one
# initial attempt plus one retry.
# =============================================================================
class RetryConfig(BaseModel):
    """Retry budget for retryable agent failures.

    Attributes:
        max_attempts: Total executions per task run (first attempt included).
        initial_delay: Backoff before the second attempt, in seconds.
        max_delay: Upper bound for any single backoff.
        backoff_multiplier: Growth factor between consecutive backoffs.
    """

    max_attempts: int = Field(default=3, ge=1, le=20)
    initial_delay: float = Field(default=0.5, ge=0, le=30.0)
    max_delay: float = Field(default=30.0, gt=0, le=300.0)
    backoff_multiplier: float = Field(default=2.0, ge=1.0, le=10.0)


class CircuitBreakerConfig(BaseModel):
    """Per-agent circuit breaker thresholds.

    Attributes:
        failure_threshold: Consecutive failures before the circuit opens.
        recovery_timeout: Seconds the circuit stays open before a probe.
        success_threshold: Probe successes needed to close the circuit.
    """

    failure_threshold: int = Field(default=5, ge=1)
    recovery_timeout: float = Field(default=30.0, ge=0)
    success_threshold: int = Field(default=1, ge=1)


# =============================================================================
# Dispatch Configuration
# =============================================================================
class DispatchConfig(BaseModel):
    """Background dispatch settings.

    Attributes:
        workers_per_organization: Dispatch loops started per organization.
            Zero is allowed: tasks then wait until ``run_pending`` is called.
        max_concurrent_tasks: In-flight executions allowed per worker.
        idle_poll_interval: Seconds a worker sleeps when it finds nothing
            ready and receives no wake-up signal.
    """

    workers_per_organization: int = Field(default=1, ge=0, le=64)
    max_concurrent_tasks: int = Field(default=8, ge=1, le=1024)
    idle_poll_interval: float = Field(default=0.5, gt=0, le=60.0)


# =============================================================================
# Capability Configuration
# =============================================================================
# The reasoning step each executive calls is an opaque capability. Only the
# mock provider ships with Boardroom; real providers plug into the factory.
# =============================================================================
class CapabilityConfig(BaseModel):
    """Configuration for the capability (LLM) provider behind every agent.

    Attributes:
        provider: Provider name understood by ``create_llm_provider``.
        model: Model identifier within the provider.
        api_key: Provider credential (None for the mock provider).
        temperature: Sampling temperature.
        max_tokens: Response size limit.
        timeout_seconds: Per-call timeout; a timeout is reported as
            CapabilityUnavailableError.
    """

    provider: str = Field(default="mock")
    model: str = Field(default="mock-executive")
    api_key: Optional[str] = Field(default=None)
    temperature: float = Field(default=0.4, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2048, ge=1, le=128000)
    timeout_seconds: float = Field(default=60.0, gt=0, le=3600)


# =============================================================================
# Main Configuration
# =============================================================================
class BoardroomConfig(BaseSettings):
    """Top-level configuration for the orchestrator.

    Example:
        >>> config = BoardroomConfig(
        ...     log_level="DEBUG",
        ...     retry=RetryConfig(max_attempts=2, initial_delay=0.01),
        ... )
    """

    # -------------------------------------------------------------------------
    # General Settings
    # -------------------------------------------------------------------------
    environment: Literal["dev", "staging", "prod"] = Field(default="dev")
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    default_failure_policy: FailurePolicy = Field(
        default=FailurePolicy.FAIL_FAST_ALL,
        description="Policy for workflows submitted without one",
    )

    # -------------------------------------------------------------------------
    # Nested Configurations
    # -------------------------------------------------------------------------
    retry: RetryConfig = Field(default_factory=RetryConfig)
    circuit_breaker: CircuitBreakerConfig = Field(default_factory=CircuitBreakerConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    capability: CapabilityConfig = Field(default_factory=CapabilityConfig)

    model_config = {
        "env_prefix": "BOARDROOM_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
    }


# =============================================================================
# Configuration Loader
# =============================================================================
def load_config(path: Optional[str] = None) -> BoardroomConfig:
    """Load configuration from a YAML file and/or environment variables.

    Args:
        path: Path to a YAML file. If None, ``boardroom.yaml`` in the current
            directory is used when present; otherwise defaults + environment.

    Returns:
        A fully validated BoardroomConfig instance.

    Raises:
        FileNotFoundError: If an explicit path is provided but doesn't exist.
        ConfigurationError: If the file is not valid YAML or fails validation.
    """
    if path is None:
        default_path = Path("boardroom.yaml")
        if default_path.exists():
            path = str(default_path)

    yaml_data: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(config_path) as f:
            try:
                raw_data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(
                    message=f"Invalid YAML in {path}: {e}",
                    details={"path": path},
                ) from e
            if isinstance(raw_data, dict):
                yaml_data = raw_data

    try:
        return BoardroomConfig(**yaml_data)
    except ValidationError as e:
        raise ConfigurationError(
            message=f"Invalid configuration: {e.error_count()} error(s)",
            details={"path": path, "errors": e.errors(include_url=False)},
        ) from e


def get_default_config() -> BoardroomConfig:
    """Create a BoardroomConfig from defaults and environment variables."""
    return BoardroomConfig()
