"""Harness configuration model.

Built from command-line arguments by the run driver; every option has a
default so that a bare ``streamcheck`` invocation runs the packaged sample
case against a local broker.
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from streamcheck.servers.kafka_server import DEFAULT_BOOTSTRAP_SERVERS
from streamcheck.servers.tcp_server import DEFAULT_TCP_PORT

DEFAULT_TEST_CASE = "stream/kafka/JSON-STREAM-KAFKA-basic"
BOOTSTRAP_ENV_VAR = "STREAMCHECK_KAFKA_BOOTSTRAP_SERVERS"

# Hard bound on the sink wait, in multiples of the quiet period.
DEFAULT_TIMEOUT_FACTOR = 6.0

_TYPE_ALIASES = {"kafka": "broker"}
_POST_PROCESS_ALIASES = {"noopt": "none", "nop": "none", "jsonld": "json-ld"}


class TcpServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=DEFAULT_TCP_PORT, ge=0, le=65535)
    accept_timeout_seconds: float = Field(default=30.0, gt=0)

    model_config = ConfigDict(extra="forbid")


class KafkaServerConfig(BaseModel):
    bootstrap_servers: str = Field(default=DEFAULT_BOOTSTRAP_SERVERS, min_length=1)
    topic: str | None = None
    partitions: int = Field(default=1, ge=1)
    replication_factor: int = Field(default=1, ge=1)
    send_timeout_seconds: float = Field(default=10.0, gt=0)

    model_config = ConfigDict(extra="forbid")


class HarnessConfig(BaseModel):
    """Options for one streaming conformance run."""

    path: str = Field(default=DEFAULT_TEST_CASE, min_length=1)
    type: Literal["tcp", "broker"] = "broker"
    post_process: Literal["none", "bulk", "json-ld"] = "none"

    idle_seconds: float = Field(default=10.0, gt=0)
    timeout_seconds: float | None = Field(default=None, gt=0)
    submit_timeout_seconds: float = Field(default=30.0, gt=0)
    cancel_timeout_seconds: float = Field(default=10.0, gt=0)
    workers: int = Field(default=8, ge=4)

    tcp: TcpServerConfig = Field(default_factory=TcpServerConfig)
    kafka: KafkaServerConfig = Field(default_factory=KafkaServerConfig)

    fixtures_root: Path | None = None
    events_path: Path | None = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            return _TYPE_ALIASES.get(value, value)
        return value

    @field_validator("post_process", mode="before")
    @classmethod
    def _normalize_post_process(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            return _POST_PROCESS_ALIASES.get(value, value)
        return value

    @model_validator(mode="after")
    def validate_timeouts(self) -> HarnessConfig:
        """Default the hard sink bound and keep it above the quiet period."""
        if self.timeout_seconds is None:
            self.timeout_seconds = self.idle_seconds * DEFAULT_TIMEOUT_FACTOR
        if self.timeout_seconds <= self.idle_seconds:
            raise ValueError("timeout_seconds must be greater than idle_seconds")
        return self

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> HarnessConfig:
        """Create a config from run driver arguments; unset flags keep defaults."""
        data: dict[str, Any] = {}
        for key in (
            "path",
            "type",
            "post_process",
            "idle_seconds",
            "timeout_seconds",
            "fixtures_root",
            "events_path",
        ):
            value = getattr(args, key, None)
            if value is not None:
                data[key] = value

        kafka: dict[str, Any] = {}
        bootstrap = getattr(args, "bootstrap_servers", None) or os.environ.get(BOOTSTRAP_ENV_VAR)
        if bootstrap:
            kafka["bootstrap_servers"] = bootstrap
        if getattr(args, "topic", None):
            kafka["topic"] = args.topic
        if kafka:
            data["kafka"] = kafka

        if getattr(args, "tcp_port", None) is not None:
            data["tcp"] = {"port": args.tcp_port}

        return cls.model_validate(data)
