"""Lightweight HTTP health endpoint for deployment platforms."""

from __future__ import annotations

import asyncio
import json

from .models.config import BotSettings
from .services.giveaways import GiveawayScheduler
from .services.store import ECONOMY, LEVELS, CounterStore

NOT_FOUND = (
    "HTTP/1.1 404 Not Found\r\n"
    "Content-Length: 0\r\n"
    "Connection: close\r\n"
    "\r\n"
)


def health_payload(settings: BotSettings, store: CounterStore, giveaways: GiveawayScheduler) -> dict:
    return {
        "status": "ok",
        "prefix": settings.command_prefix,
        "active_giveaways": len(giveaways.active()),
        "levels_tracked": store.count(LEVELS),
        "economy_accounts": store.count(ECONOMY),
    }


async def _handle_client(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    settings: BotSettings,
    store: CounterStore,
    giveaways: GiveawayScheduler,
) -> None:
    try:
        data = await reader.readuntil(b"\r\n\r\n")
    except (asyncio.IncompleteReadError, asyncio.LimitOverrunError):
        writer.close()
        await writer.wait_closed()
        return

    request_line = data.decode(errors="ignore").split("\r\n", 1)[0]
    method, path, *_ = request_line.split(" ") + ["", ""]
    if method.upper() != "GET" or path not in {"/", "/health", "/healthz"}:
        writer.write(NOT_FOUND.encode())
        await writer.drain()
        writer.close()
        await writer.wait_closed()
        return

    body = json.dumps(health_payload(settings, store, giveaways)).encode()
    response = (
        "HTTP/1.1 200 OK\r\n"
        "Content-Type: application/json\r\n"
        f"Content-Length: {len(body)}\r\n"
        "Connection: close\r\n"
        "\r\n"
    ).encode() + body
    writer.write(response)
    await writer.drain()
    writer.close()
    await writer.wait_closed()


async def start_health_server(
    host: str,
    port: int,
    settings: BotSettings,
    store: CounterStore,
    giveaways: GiveawayScheduler,
) -> asyncio.AbstractServer:
    server = await asyncio.start_server(
        lambda r, w: _handle_client(r, w, settings, store, giveaways),
        host,
        port,
    )
    return server
