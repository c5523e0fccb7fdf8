"""
Event channel client for the ticket printer client.
Receives print events over MQTT (TCP or WebSocket) and hands them to the
event dispatcher on the asyncio loop.
"""

import asyncio
import json
import time
from concurrent.futures import Future
from typing import Any

import paho.mqtt.client as mqtt

from .config import config
from .dispatch import EventDispatcher
from .jobs import PrintJob
from .utils.logger import logger

EVENT_JOB_STATUS = "job_status"


class EventChannelClient:
    """
    Inbound event source.

    Speaks MQTT only: ``API_WS_URL`` must point at an MQTT broker (or its
    WebSocket listener), not at a Socket.IO server. Whatever publishes the
    events has to publish them to that broker.

    Each event arrives on ``<prefix>/<event name>`` with a JSON payload.
    paho runs its network loop (including reconnects) in its own thread;
    messages are scheduled onto the application loop in arrival order.
    """

    def __init__(self, dispatcher: EventDispatcher, loop: asyncio.AbstractEventLoop):
        self.dispatcher = dispatcher
        self.loop = loop
        self.client = None
        self.is_connected = False

        # Statistics
        self.stats = {
            "connection_time": None,
            "messages_received": 0,
            "messages_sent": 0,
            "events_dispatched": 0,
            "last_message_time": None,
        }

    @property
    def protocol(self) -> str:
        """Wire protocol spoken to the broker."""
        if config.TRANSPORT_SCHEME in ("ws", "wss"):
            return f"mqtt over {config.TRANSPORT_SCHEME}"
        return config.TRANSPORT_SCHEME

    def connect(self) -> bool:
        """
        Connect to the event channel.

        Returns:
            True if connected successfully, False otherwise
        """
        if not config.PRINTER_TOKEN:
            logger.error("❌ PRINTER_TOKEN is not set, refusing to connect")
            return False

        try:
            logger.info(f"🔌 Connecting to MQTT broker: {config.TRANSPORT_HOST}:{config.TRANSPORT_PORT}",
                        protocol=self.protocol)

            websockets = config.TRANSPORT_SCHEME in ("ws", "wss")
            self.client = mqtt.Client(
                callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
                client_id=config.CLIENT_ID,
                transport="websockets" if websockets else "tcp",
            )

            # The token is presented as the password during the handshake
            self.client.username_pw_set(config.CLIENT_ID, config.PRINTER_TOKEN)
            if websockets:
                self.client.ws_set_options(path=config.TRANSPORT_WS_PATH)
            if config.TRANSPORT_SCHEME in ("mqtts", "wss"):
                self.client.tls_set()
            self.client.reconnect_delay_set(min_delay=1, max_delay=30)

            # Set callbacks
            self.client.on_connect = self._on_connect
            self.client.on_disconnect = self._on_disconnect
            self.client.on_message = self._on_message
            self.client.on_publish = self._on_publish

            self.client.connect(config.TRANSPORT_HOST, config.TRANSPORT_PORT, config.TRANSPORT_KEEPALIVE)

            # Start network loop
            self.client.loop_start()

            # Wait for connection
            start_time = time.time()
            while not self.is_connected and time.time() - start_time < 10:
                time.sleep(0.1)

            if self.is_connected:
                logger.transport_connect(config.TRANSPORT_HOST, config.TRANSPORT_PORT)
                self.stats["connection_time"] = time.time()
                return True
            else:
                logger.error("❌ Event channel connection timeout")
                return False

        except (OSError, ValueError) as e:
            logger.error(f"❌ Event channel connection error: {str(e)}")
            return False

    def disconnect(self):
        """Disconnect from the event channel."""
        if self.client:
            try:
                self.client.loop_stop()
                self.client.disconnect()
            except (OSError, RuntimeError) as e:
                logger.debug(f"🔍 Event channel disconnect error: {str(e)}")

        self.is_connected = False
        logger.transport_disconnect("shutdown")

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        """Handle connection callback."""
        if reason_code.is_failure:
            logger.error(f"❌ Event channel connection refused: {reason_code}")
            self.is_connected = False
            return

        self.is_connected = True

        # Subscriptions are renewed on every (re)connect
        for event in self.dispatcher.handlers:
            client.subscribe(config.topic(event), qos=1)
            logger.info(f"📡 Subscribed to event: {config.topic(event)}")

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        """Handle disconnection callback."""
        self.is_connected = False
        if reason_code.is_failure:
            logger.transport_disconnect(str(reason_code))
        else:
            logger.info("🔌 Event channel disconnected gracefully")

    def _on_message(self, client, userdata, msg):
        """Handle incoming messages on the paho network thread."""
        event = msg.topic.rsplit("/", 1)[-1]
        logger.event_received(event, len(msg.payload))

        self.stats["messages_received"] += 1
        self.stats["last_message_time"] = time.time()

        try:
            payload = self._decode(msg.payload)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"❌ Invalid JSON in {event} event: {str(e)}")
            return

        future = asyncio.run_coroutine_threadsafe(self.dispatcher.dispatch(event, payload), self.loop)
        future.add_done_callback(self._on_dispatch_done)
        self.stats["events_dispatched"] += 1

    def _on_publish(self, client, userdata, mid, reason_code, properties):
        """Handle publish callback."""
        self.stats["messages_sent"] += 1
        logger.debug(f"📤 Message published: {mid}")

    @staticmethod
    def _decode(raw: bytes) -> Any:
        text = raw.decode("utf-8").strip()
        if not text:
            return None
        return json.loads(text)

    def _on_dispatch_done(self, future: Future):
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"❌ Event handling error: {type(error).__name__}: {str(error)}")

    def publish_job_status(self, job: PrintJob):
        """Report a finished job back over the channel."""
        self._publish(config.topic(EVENT_JOB_STATUS), job.to_status())

    def _publish(self, topic: str, data: dict):
        """
        Publish data to a topic.

        Args:
            topic: Topic name
            data: Data to publish
        """
        if not self.is_connected:
            logger.warning("⚠️ Cannot publish - event channel not connected")
            return

        payload = json.dumps(data)
        result = self.client.publish(topic, payload, qos=0)

        if result.rc == mqtt.MQTT_ERR_SUCCESS:
            logger.debug(f"📤 Published to {topic}", size=len(payload))
        else:
            logger.error(f"❌ Publish failed: {result.rc}")

    def get_connection_info(self) -> dict:
        """Get connection information."""
        return {
            "connected": self.is_connected,
            "protocol": self.protocol,
            "host": config.TRANSPORT_HOST,
            "port": config.TRANSPORT_PORT,
            "client_id": config.CLIENT_ID,
            "events": [config.topic(event) for event in self.dispatcher.handlers],
            "stats": self.stats.copy(),
        }
