from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

import boto3
from botocore.client import BaseClient

if TYPE_CHECKING:
    from mypy_boto3_sqs import SQSClient
else:
    SQSClient = BaseClient  # type: ignore[misc,assignment]


DEFAULT_REGION = "eu-west-1"


@dataclass(frozen=True, slots=True)
class AwsRuntimeConfig:
    """Where boto3 should point.

    Env vars:
      - AWS_REGION (default eu-west-1)
      - ENDPOINT_URL (LocalStack or any SQS-compatible endpoint)
    """

    region: str
    endpoint_url: str | None

    @staticmethod
    def from_env() -> "AwsRuntimeConfig":
        endpoint_url = os.getenv("ENDPOINT_URL")
        if endpoint_url is not None:
            endpoint_url = endpoint_url.strip() or None

        return AwsRuntimeConfig(
            region=os.getenv("AWS_REGION", DEFAULT_REGION),
            endpoint_url=endpoint_url,
        )


def sqs_client(cfg: AwsRuntimeConfig | None = None) -> SQSClient:
    cfg = cfg or AwsRuntimeConfig.from_env()
    session = boto3.session.Session(region_name=cfg.region)
    return session.client("sqs", endpoint_url=cfg.endpoint_url)
