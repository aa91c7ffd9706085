import asyncio, json, os, sys, threading
from contextlib import suppress
from datetime import datetime

import websockets

URL = sys.argv[1] if len(sys.argv) > 1 else os.getenv("CHAT_URL", "ws://localhost:8080/chat")


def build_frame(text: str, now: datetime | None = None) -> str:
    now = now or datetime.now()
    return json.dumps({"message": text, "time": now.strftime("%H:%M:%S")}, ensure_ascii=False)


def pump_stdin(loop, lines: asyncio.Queue):
    # daemon thread: a pending readline must not keep the process alive
    with suppress(RuntimeError):
        for line in sys.stdin:
            loop.call_soon_threadsafe(lines.put_nowait, line)
        loop.call_soon_threadsafe(lines.put_nowait, "")


async def print_incoming(ws):
    with suppress(websockets.ConnectionClosed):
        async for line in ws:
            print(line)
    print("[!] Connection closed.")


async def main():
    loop = asyncio.get_running_loop()
    lines: asyncio.Queue = asyncio.Queue()
    threading.Thread(target=pump_stdin, args=(loop, lines), daemon=True).start()

    async with websockets.connect(URL) as ws:
        print(f"Connected to {URL}  (type /quit to leave)")
        reader = asyncio.create_task(print_incoming(ws))
        try:
            while True:
                next_line = asyncio.create_task(lines.get())
                done, _ = await asyncio.wait({reader, next_line}, return_when=asyncio.FIRST_COMPLETED)
                if next_line not in done:
                    next_line.cancel()
                    break
                line = next_line.result()
                if not line or line.strip() == "/quit":
                    break
                text = line.rstrip("\n")
                if text:
                    await ws.send(build_frame(text))
        finally:
            reader.cancel()
            with suppress(asyncio.CancelledError):
                await reader


if __name__ == "__main__":
    with suppress(KeyboardInterrupt):
        asyncio.run(main())
