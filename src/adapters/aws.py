from __future__ import annotations

import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator

import boto3
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError

from src.domain.exceptions import TransientIO

if TYPE_CHECKING:
    from mypy_boto3_dynamodb import DynamoDBClient
else:
    DynamoDBClient = BaseClient  # type: ignore[misc,assignment]


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True, slots=True)
class AwsRuntimeConfig:
    use_localstack: bool
    region: str
    endpoint_url: str | None

    @staticmethod
    def from_env() -> "AwsRuntimeConfig":
        endpoint_url = os.getenv("ENDPOINT_URL")
        if endpoint_url is not None:
            endpoint_url = endpoint_url.strip() or None

        return AwsRuntimeConfig(
            use_localstack=_env_bool("USE_LOCALSTACK", False),
            region=os.getenv("AWS_REGION", "ap-south-1"),
            endpoint_url=endpoint_url,
        )

    def resolved_endpoint_url(self) -> str | None:
        """Return the endpoint URL to use for boto3.

        Priority:
          1) ENDPOINT_URL (explicit override; preferred for LocalStack)
          2) LOCALSTACK_ENDPOINT_URL if USE_LOCALSTACK is enabled
          3) None (AWS real)
        """

        if self.endpoint_url:
            return self.endpoint_url
        if self.use_localstack:
            return os.getenv("LOCALSTACK_ENDPOINT_URL", "http://localhost:4566")
        return None


def dynamodb_client() -> DynamoDBClient:
    cfg = AwsRuntimeConfig.from_env()
    endpoint_url = cfg.resolved_endpoint_url()
    session = boto3.session.Session(region_name=cfg.region)
    return session.client("dynamodb", endpoint_url=endpoint_url)


@contextmanager
def translate_aws_errors(action: str) -> Iterator[None]:
    """Re-raise boto3/botocore failures as TransientIO."""

    try:
        yield
    except (ClientError, BotoCoreError) as exc:
        raise TransientIO(f"{action} failed: {exc}") from exc
