"""
Send one chat message and print the streamed reply.

Usage:
    cd backend
    python -m scripts.chat_stream "Hello there"
    python -m scripts.chat_stream --session <uuid> --token dev_user "And then?"

Creates a session when --session is not given. The reply is decoded with the
same SSE decoder the tests use, so this doubles as a smoke test for a
running server.
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import httpx

# Ensure backend root is on sys.path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.services.sse_transport import ContentChunk, DoneSignal, ErrorPayload, iter_events


async def send(
    base_url: str,
    token: str,
    content: str,
    session_id: str | None,
    model_id: str | None = None,
) -> int:
    headers = {"Authorization": f"Bearer {token}"}
    async with httpx.AsyncClient(base_url=base_url, headers=headers, timeout=None) as client:
        if not session_id:
            resp = await client.post("/api/chat/sessions", json={})
            resp.raise_for_status()
            session_id = resp.json()["session_id"]
            print(f"[session {session_id}]", file=sys.stderr)

        async with client.stream(
            "POST",
            f"/api/chat/sessions/{session_id}/messages",
            json={"content": content, "model_id": model_id},
        ) as resp:
            if resp.status_code != 200:
                await resp.aread()
                print(f"Error {resp.status_code}: {resp.text}", file=sys.stderr)
                return 1

            remaining = resp.headers.get("X-RateLimit-Remaining-Minute")
            async for event in iter_events(resp.aiter_bytes()):
                if isinstance(event, ContentChunk):
                    print(event.content, end="", flush=True)
                elif isinstance(event, ErrorPayload):
                    print(f"\n[error: {event.error} ({event.code})]", file=sys.stderr)
                    return 1
                elif isinstance(event, DoneSignal):
                    break
            print()
            if remaining is not None:
                print(f"[{remaining} message(s) left this minute]", file=sys.stderr)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Stream a chat reply from a running server.")
    parser.add_argument("content", help="Message to send")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--token", default="dev_user", help="Bearer token (user ID in mock auth mode)")
    parser.add_argument("--session", default=None, help="Existing session ID")
    parser.add_argument("--model", default=None, help="Model ID from /api/models")
    args = parser.parse_args()
    sys.exit(asyncio.run(send(args.base_url, args.token, args.content, args.session, args.model)))


if __name__ == "__main__":
    main()
