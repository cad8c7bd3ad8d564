"""Minimal remote app for the TeamSpeak 5 client.

Connects to the local remote apps API, authenticates, stores the rotated
API key and prints every incoming event.

    pip install ts-remote-client

    # First run: accept the app in TeamSpeak's remote apps settings
    python examples/remote_app.py

    # Later runs: reuse the key printed by the first run
    python examples/remote_app.py --key <API key>
"""

import argparse
import asyncio
import logging
import signal

from ts_remote_client import TSAuthError, connect


async def main(host: str, port: int, key: str, policy_independent: bool):
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    config = {"api": {"host": host, "port": port, "key": key}}
    try:
        async with connect(config, auth_before_ready=not policy_independent) as conn:
            print(f"Connected to {conn.url}")
            print(f"API key: {conn.api_key}")
            print("Listening for events... (Ctrl+C to stop)\n")

            conn.on("incomingMessage", lambda msg: print(f"[{msg.get('type')}] {msg}"))
            conn.on("error", lambda info: print(f"error: {info.exception}"))
            conn.on("connectionClosed", lambda info: stop.set())

            await stop.wait()
    except TSAuthError as exc:
        print(f"Authentication failed: {exc}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="TS5 remote apps client")
    parser.add_argument("--host", default="localhost")
    parser.add_argument("--port", type=int, default=5899)
    parser.add_argument("--key", default="", help="API key from a previous run")
    parser.add_argument(
        "--independent",
        action="store_true",
        help="Flush queued messages on open instead of after auth",
    )
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)

    asyncio.run(main(args.host, args.port, args.key, args.independent))
