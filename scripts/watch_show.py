#!/usr/bin/env python3
"""Watch a light show from the command line.

Polls the show, controller and speaker feeds and prints one line per
snapshot change, the way a viewer widget would re-render.

Usage
-----
Point the client at the backend and run::

    export LOF_SHOW_BASE_URL="https://example.com/wp-json/lof-viewer/v1"
    export LOF_CONTROLLER_BASE_URL="https://example.com/wp-json/lof-viewer/v1/fpp"
    python scripts/watch_show.py

Options::

    --once               Fetch once, print a JSON dump and exit
    --duration SECONDS   Stop after this many seconds (default: run until Ctrl-C)
    --request SONG_ID    Request a song after the first fetch
    --session FILE       Persist the visitor record in FILE
    --verbose, -v        Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from lofviewer import ViewerClient, ViewerConfig, ViewerSnapshot  # noqa: E402


def _render(snapshot: ViewerSnapshot) -> None:
    show = snapshot.show_data
    now_playing = show.now_playing.title if show is not None and show.now_playing is not None else "-"
    queued = len(show.queue) if show is not None else 0
    speaker = snapshot.speaker
    speaker_text = f"on ({speaker.remaining_seconds}s)" if speaker.enabled else "off"
    line = f"[{snapshot.current_state.value:>8}] playing={now_playing} queue={queued} speaker={speaker_text}"
    if snapshot.notice is not None:
        line += f" notice={snapshot.notice.kind.value}:{snapshot.notice.code}"
    print(line)


async def main() -> None:
    parser = argparse.ArgumentParser(description="Watch light show status from the terminal.")
    parser.add_argument("--once", action="store_true", help="Fetch once, print a JSON dump and exit")
    parser.add_argument("--duration", type=float, help="Stop after this many seconds")
    parser.add_argument("--request", metavar="SONG_ID", help="Request a song after the first fetch")
    parser.add_argument("--session", metavar="FILE", help="Persist the visitor record in FILE")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    overrides: dict[str, object] = {}
    if args.session:
        overrides["session_path"] = args.session
    if args.verbose:
        overrides["debug"] = True
    config = ViewerConfig.from_env(**overrides)

    async with ViewerClient(config, autostart_polling=False) as viewer:
        await viewer.refresh()
        if args.once:
            print(viewer.machine.dump_state())
            return

        viewer.subscribe(_render)
        _render(viewer.get_state())

        if args.request:
            result = await viewer.request_song(args.request)
            if result is not None and not result.success:
                print(f"request failed: {result.error_code} {result.message or ''}".rstrip(), file=sys.stderr)

        viewer.poller.start_polling()
        try:
            if args.duration is not None:
                await asyncio.sleep(args.duration)
            else:
                await asyncio.Event().wait()
        except asyncio.CancelledError:
            pass


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
