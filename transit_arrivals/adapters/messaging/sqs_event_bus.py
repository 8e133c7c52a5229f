from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass, field

from botocore.exceptions import BotoCoreError, ClientError

from transit_arrivals.adapters.aws import AwsRuntimeConfig, SQSClient, sqs_client
from transit_arrivals.app.ports.output import BusMessage, IEventBus
from transit_arrivals.domain.exceptions.transit import BusPublishError

logger = logging.getLogger(__name__)

_MISSING_QUEUE_CODES = {
    "AWS.SimpleQueueService.NonExistentQueue",
    "QueueDoesNotExist",
}
KEY_ATTRIBUTE = "key"


def _error_code(exc: ClientError) -> str | None:
    response = getattr(exc, "response", None)
    if not isinstance(response, dict):
        return None
    return response.get("Error", {}).get("Code")


@dataclass(slots=True)
class SqsEventBus(IEventBus):
    """Event bus on SQS (LocalStack via ENDPOINT_URL).

    A FIFO queue (URL ending in .fifo) keeps per-vehicle ordering by using the
    message key as MessageGroupId. On a standard queue the key travels as a
    message attribute and ordering is best effort.

    Env vars:
      - SQS_QUEUE_URL (otherwise the queue is looked up by topic name)
      - ENDPOINT_URL, AWS_REGION
    """

    queue_url: str | None = None
    aws: AwsRuntimeConfig | None = None

    _client: SQSClient | None = field(default=None, init=False, repr=False)
    _resolved: dict[str, str] = field(default_factory=dict, init=False, repr=False)

    def _sqs(self) -> SQSClient:
        if self._client is None:
            self._client = sqs_client(self.aws)
        return self._client

    def _queue_url(self, topic: str) -> str:
        value = self.queue_url or os.getenv("SQS_QUEUE_URL")
        if value:
            return value
        if topic not in self._resolved:
            resp = self._sqs().get_queue_url(QueueName=topic)
            self._resolved[topic] = resp["QueueUrl"]
        return self._resolved[topic]

    def publish(self, topic: str, key: str, value: bytes) -> str:
        try:
            url = self._queue_url(topic)
            params: dict = {
                "QueueUrl": url,
                "MessageBody": value.decode("utf-8"),
                "MessageAttributes": {
                    KEY_ATTRIBUTE: {"DataType": "String", "StringValue": key}
                },
            }
            if url.endswith(".fifo"):
                params["MessageGroupId"] = key
                params["MessageDeduplicationId"] = hashlib.sha256(value).hexdigest()
            resp = self._sqs().send_message(**params)
        except (ClientError, BotoCoreError, UnicodeDecodeError) as exc:
            raise BusPublishError(
                f"Publish to {topic} failed for {key}: {exc}"
            ) from exc
        return str(resp.get("MessageId", ""))

    def consume(
        self, topic: str, *, max_messages: int = 10, wait_time_s: float = 1.0
    ) -> list[BusMessage]:
        try:
            url = self._queue_url(topic)
            resp = self._sqs().receive_message(
                QueueUrl=url,
                MaxNumberOfMessages=max(1, min(10, int(max_messages))),
                WaitTimeSeconds=max(0, min(20, int(wait_time_s))),
                MessageAttributeNames=[KEY_ATTRIBUTE],
                AttributeNames=["MessageGroupId"],
            )
        except ClientError as exc:
            # LocalStack race: the consumer may start before the queue exists.
            if _error_code(exc) in _MISSING_QUEUE_CODES:
                logger.debug("Queue for %s does not exist yet", topic)
                return []
            raise

        out: list[BusMessage] = []
        for msg in resp.get("Messages", []) or []:
            body = msg.get("Body")
            if body is None:
                continue
            attrs = msg.get("MessageAttributes") or {}
            key = attrs.get(KEY_ATTRIBUTE, {}).get("StringValue") or (
                msg.get("Attributes") or {}
            ).get("MessageGroupId", "")
            out.append(
                BusMessage(
                    topic=topic,
                    key=key,
                    value=body.encode("utf-8"),
                    receipt=msg.get("ReceiptHandle"),
                )
            )
        return out

    def acknowledge(self, message: BusMessage) -> None:
        if not message.receipt:
            return
        self._sqs().delete_message(
            QueueUrl=self._queue_url(message.topic), ReceiptHandle=message.receipt
        )
