from __future__ import annotations

import argparse
import asyncio
import sys
from typing import List, Optional

from meetai.config import Settings
from meetai.logging_utils import setup_logging


def _print_result(tab_id, result) -> None:
    if not result.success:
        print(f"[chunk {result.sequence}] delivery failed: {result.error}", file=sys.stderr)
        return
    payload = result.payload or {}
    if payload.get("transcript"):
        print(f"[chunk {result.sequence}] {payload['transcript']}")
    if payload.get("summary"):
        print(f"    summary: {payload['summary']}")


async def _record(args, settings: Settings) -> int:
    from meetai.agent import TabAgent
    from meetai.audio_source import SoundDeviceSource
    from meetai.sessions import SessionTracker
    from meetai.uploader import ChunkUploader, RetryPolicy

    policy = RetryPolicy(max_attempts=settings.upload_max_attempts, delay=settings.upload_retry_delay)
    async with ChunkUploader(args.backend_url, policy=policy) as uploader:
        if not await uploader.health():
            print(f"Backend at {args.backend_url} is not reachable; chunks will fail until it is.", file=sys.stderr)

        agent = TabAgent(
            SessionTracker(),
            uploader,
            lambda: SoundDeviceSource(device=args.device),
            interval=args.interval,
            on_result=_print_result,
        )
        resp = await agent.handle({"action": "startRecording", "tabId": args.tab, "platform": args.platform})
        if not resp["success"]:
            print(f"Could not start recording: {resp['error']}", file=sys.stderr)
            return 1
        print(f"Recording session {resp['sessionId']} (Ctrl+C to stop)")

        try:
            if args.duration:
                await asyncio.sleep(args.duration)
            else:
                await asyncio.Event().wait()
        finally:
            resp = await agent.handle({"action": "stopSession", "tabId": args.tab})
            if resp["success"]:
                session = resp["session"]
                print(f"Stopped. {session['transcriptCount']} transcripts, {session['summaryCount']} summaries, "
                      f"{len(session['errors'])} errors.")
    return 0


def _devices() -> int:
    from meetai.audio_source import list_input_devices

    for dev in list_input_devices():
        print(f"{dev['index']:>3}  {dev['name']}  (ch={dev['channels']}, sr={dev['defaultSampleRate']})")
    return 0


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="meetai", description="Live meeting transcription and summaries")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the backend API")
    serve.add_argument("--host", default=settings.host)
    serve.add_argument("--port", type=int, default=settings.port)

    record = sub.add_parser("record", help="record from an input device and stream chunks to the backend")
    record.add_argument("--platform", default="unknown", help="google-meet, zoom, teams or unknown")
    record.add_argument("--tab", default="cli", help="tab identifier used for session tracking")
    record.add_argument("--backend-url", default=settings.backend_url)
    record.add_argument("--interval", type=float, default=settings.chunk_interval_seconds, help="chunk length in seconds")
    record.add_argument("--duration", type=float, default=None, help="stop after this many seconds")
    record.add_argument("--device", default=None, help="sounddevice input device (index or name)")

    sub.add_parser("devices", help="list audio input devices")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    settings = Settings.from_env()
    args = build_parser(settings).parse_args(argv)

    if args.command == "serve":
        from meetai.run_server import main as run_server
        run_server(args.host, args.port)
        return 0

    setup_logging(settings.log_level, settings.log_dir)
    if args.command == "devices":
        return _devices()

    if args.device is not None and args.device.isdigit():
        args.device = int(args.device)
    try:
        return asyncio.run(_record(args, settings))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
