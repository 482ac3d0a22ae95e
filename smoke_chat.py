import asyncio
import json
import sys

import websockets


async def smoke(url: str = "ws://localhost:3000/ws/chat"):
    async with websockets.connect(url) as ws:
        # Join first; the server replies with welcome, roster, then ack
        await ws.send(json.dumps({"type": "join", "username": "smoke-test", "room": "lobby", "ackId": 1}))
        while True:
            frame = json.loads(await ws.recv())
            print(f"Received: {frame}")
            if frame["type"] == "ack":
                break

        # Send a message and a location
        await ws.send(json.dumps({"type": "clientMessage", "text": "Hello from Python!", "ackId": 2}))
        await ws.send(json.dumps({"type": "locationData", "latitude": 51.5, "longitude": -0.12, "ackId": 3}))

        for _ in range(4):
            print(f"Received: {await ws.recv()}")


if __name__ == "__main__":
    asyncio.run(smoke(*sys.argv[1:]))
