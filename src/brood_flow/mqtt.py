"""
MQTT transport for Broodminder devices

This module owns the connection to the MQTT broker. Publications are
submitted to a queue and sent from the connection loop, so callers never
wait on the network.
"""

import asyncio
import logging
import os
from typing import AsyncContextManager
from typing import Callable
from typing import Optional

import aiomqtt

from brood_flow.errors import TransportFailure
from brood_flow.errors import TransportFatal

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_ID = "brood-flow"
DEFAULT_KEEPALIVE = 5
DEFAULT_QOS = 1


class MqttConfig:
    """Configuration for the MQTT connection"""

    def __init__(
        self,
        host: str = None,
        port: int = None,
        client_id: str = DEFAULT_CLIENT_ID,
        keepalive: int = DEFAULT_KEEPALIVE,
        qos: int = DEFAULT_QOS,
    ):
        """
        Initialize MQTT configuration

        Args:
            host: MQTT broker hostname (default: from MQTT_HOST env var or localhost)
            port: MQTT broker port (default: from MQTT_PORT env var or 1883)
            client_id: MQTT client identifier (default: 'brood-flow')
            keepalive: Keep alive interval in seconds (default: 5)
            qos: Quality of service for publications (default: 1, at least once)
        """
        self.host = host or os.environ.get("MQTT_HOST", "localhost")
        self.port = int(port or os.environ.get("MQTT_PORT", 1883))
        self.client_id = client_id
        self.keepalive = keepalive
        self.qos = qos

    def __repr__(self) -> str:
        return f"MqttConfig(host={self.host!r}, port={self.port}, client_id={self.client_id!r})"


class MqttPublisher:
    """Fire-and-forget publisher backed by an aiomqtt client"""

    def __init__(
        self,
        config: MqttConfig = None,
        max_pending: int = 100,
        client_factory: Optional[Callable[[], AsyncContextManager]] = None,
    ):
        """
        Initialize the MQTT publisher

        Args:
            config: MQTT configuration (optional)
            max_pending: Number of messages that may wait for the connection loop
            client_factory: Builds the client used by the connection loop (default: aiomqtt.Client)
        """
        self.config = config or MqttConfig()
        self._queue: asyncio.Queue[tuple[str, bytes]] = asyncio.Queue(maxsize=max_pending)
        self._client_factory = client_factory or self._create_client
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    def _create_client(self) -> aiomqtt.Client:
        return aiomqtt.Client(
            self.config.host,
            port=self.config.port,
            identifier=self.config.client_id,
            keepalive=self.config.keepalive,
        )

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def submit(self, topic: str, payload: bytes) -> None:
        """
        Queue a message for publication without waiting for it to be sent

        Raises:
            TransportFailure: if the transport is closed or the queue is full
        """
        if self._closed:
            raise TransportFailure(f"MQTT transport is closed, dropping message for {topic}")
        try:
            self._queue.put_nowait((topic, payload))
        except asyncio.QueueFull as e:
            raise TransportFailure(f"MQTT publish queue is full, dropping message for {topic}") from e

    async def run(self) -> None:
        """
        Connect to the broker and publish queued messages until cancelled

        Raises:
            TransportFatal: if the connection to the broker fails or is lost
        """
        logger.info("Connecting to MQTT broker at %s:%s", self.config.host, self.config.port)
        try:
            async with self._client_factory() as client:
                logger.info("Connected to MQTT broker at %s:%s", self.config.host, self.config.port)
                watcher = asyncio.create_task(self._watch_connection(client))
                drain = asyncio.create_task(self._drain(client))
                try:
                    done, _ = await asyncio.wait({watcher, drain}, return_when=asyncio.FIRST_COMPLETED)
                finally:
                    # Publishes still in flight cannot complete once the client context exits
                    tasks = (watcher, drain, *self._tasks)
                    for task in tasks:
                        task.cancel()
                    await asyncio.gather(*tasks, return_exceptions=True)

                for task in done:
                    task.result()
        except aiomqtt.MqttError as e:
            raise TransportFatal(f"MQTT connection to {self.config.host}:{self.config.port} failed: {e}") from e
        finally:
            self._closed = True

    async def _drain(self, client) -> None:
        while True:
            topic, payload = await self._queue.get()
            task = asyncio.create_task(self._publish(client, topic, payload))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _watch_connection(self, client) -> None:
        # Nothing is subscribed, so the message iterator only returns or raises when the connection goes away
        async for _ in client.messages:
            pass
        raise aiomqtt.MqttError("Connection closed by broker")

    async def _publish(self, client, topic: str, payload: bytes) -> None:
        try:
            await client.publish(topic, payload=payload, qos=self.config.qos, retain=False)
        except aiomqtt.MqttError as e:
            logger.error("Error publishing to %s: %s", topic, e)
        except Exception:
            logger.exception("Unexpected error publishing to %s", topic)
        else:
            logger.debug("Sent message to %s", topic)
