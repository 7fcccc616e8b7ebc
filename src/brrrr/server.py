"""
WebSocket server broadcasting touch status to UI clients
"""

import asyncio
import json
import logging
import queue
import threading
from typing import Any, Dict, Optional, Set

import websockets

logger = logging.getLogger(__name__)

COMMAND_TYPES = {"pause", "resume", "reset", "test_alert"}


class TouchStatusServer:
    def __init__(self, host="localhost", port=8765):
        self.host = host
        self.port = port
        self.clients: Set[Any] = set()
        self.server = None
        self.running = False
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.ready_event = threading.Event()

        # Shared state between the monitoring thread and the server loop
        self.latest_status: Dict[str, Any] = {}
        self.commands: "queue.Queue[Dict[str, Any]]" = queue.Queue()

    async def register_client(self, websocket):
        """Register a new client and send it the current status"""
        self.clients.add(websocket)
        logger.info(f"Client {id(websocket)} connected. Total clients: {len(self.clients)}")

        if self.latest_status:
            await self.send_to_client(websocket, {"type": "touch_state", "data": self.latest_status})

    async def unregister_client(self, websocket):
        self.clients.discard(websocket)
        logger.info(f"Client {id(websocket)} disconnected. Total clients: {len(self.clients)}")

    async def send_to_client(self, websocket, message: Dict[str, Any]) -> bool:
        client_id = id(websocket)
        try:
            await websocket.send(json.dumps(message))
            return True
        except websockets.exceptions.ConnectionClosed as e:
            logger.info(f"Connection closed when sending to client {client_id}: {e}")
            await self.unregister_client(websocket)
            return False
        except Exception as e:
            logger.error(f"Error sending message to client {client_id}: {e}")
            return False

    async def broadcast_to_all(self, message: Dict[str, Any]):
        if not self.clients:
            logger.debug("No clients connected, skipping broadcast")
            return

        clients_copy = self.clients.copy()
        results = await asyncio.gather(*[self.send_to_client(client, message) for client in clients_copy], return_exceptions=True)

        successful = sum(1 for r in results if r is True)
        if successful < len(clients_copy):
            logger.debug(f"Broadcast completed: {successful}/{len(clients_copy)} clients received message")

    async def handle_client_message(self, websocket, message_str: str):
        """Handle incoming messages from clients"""
        try:
            message = json.loads(message_str)
        except json.JSONDecodeError:
            logger.error(f"Invalid JSON received: {message_str}")
            return

        if not isinstance(message, dict):
            logger.warning(f"Ignoring non-object message: {message_str}")
            return

        message_type = message.get("type")

        if message_type == "ping":
            await self.send_to_client(websocket, {"type": "pong"})

        elif message_type == "get_status":
            await self.send_to_client(websocket, {"type": "touch_state", "data": self.latest_status})

        elif message_type in COMMAND_TYPES:
            logger.info(f"Command from client {id(websocket)}: {message_type}")
            self.commands.put(message)
            await self.send_to_client(websocket, {"type": "command_ack", "command": message_type, "status": "queued"})

        else:
            logger.warning(f"Unknown message type: {message_type}")

    async def client_handler(self, websocket):
        client_id = id(websocket)
        await self.register_client(websocket)

        try:
            async for message in websocket:
                await self.handle_client_message(websocket, message)
        except websockets.exceptions.ConnectionClosed as e:
            logger.info(f"Client {client_id} connection closed: {e}")
        finally:
            await self.unregister_client(websocket)

    async def start_server(self) -> bool:
        logger.info(f"Starting status server on {self.host}:{self.port}")
        self.loop = asyncio.get_running_loop()

        try:
            self.server = await websockets.serve(self.client_handler, self.host, self.port, ping_interval=20, ping_timeout=10)
            self.running = True
            logger.info("Status server started")
            return True
        except OSError as e:
            logger.error(f"Failed to start status server: {e}")
            self.running = False
            return False

    async def stop_server(self):
        if self.server:
            self.running = False
            self.server.close()
            await self.server.wait_closed()
            logger.info("Status server stopped")

    def publish(self, status: Dict[str, Any]):
        """Update the latest status (called from the monitoring thread)"""
        self.latest_status = status

        if self.clients and self.running and self.loop:
            message = {"type": "touch_state", "data": status}
            self.loop.call_soon_threadsafe(lambda: asyncio.ensure_future(self.broadcast_to_all(message)))

    def get_command(self) -> Optional[Dict[str, Any]]:
        """Pop the next queued client command without blocking"""
        try:
            return self.commands.get_nowait()
        except queue.Empty:
            return None

    def shutdown(self):
        """Stop the server loop started by ``run_in_thread``"""
        if self.loop and self.loop.is_running():
            self.loop.call_soon_threadsafe(self.loop.stop)

    def run_in_thread(self, startup_timeout: float = 10.0) -> threading.Thread:
        """Run the server on its own event loop in a daemon thread"""

        def run_server():
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)

            try:
                started = loop.run_until_complete(self.start_server())
                self.ready_event.set()
                if started:
                    loop.run_forever()
            except Exception as e:
                logger.error(f"Status server error: {e}")
                self.ready_event.set()
            finally:
                loop.run_until_complete(self.stop_server())
                loop.close()

        thread = threading.Thread(target=run_server, name="status_server", daemon=True)
        thread.start()

        if not self.ready_event.wait(timeout=startup_timeout):
            logger.warning(f"Status server startup timed out after {startup_timeout}s")

        return thread
