"""Command line entry point.

``subplay cues FILE`` lists the cues of a subtitle file, or prints the cue
active at ``--at`` seconds. ``subplay play MEDIA --subs FILE`` plays a file
through mpv and prints each subtitle as it becomes active; the player keys
(Space, F, M, arrows, G/H, 1-5) go through KeyboardControls. ``subplay play``
with no MEDIA reopens the last session.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .cue_index import find_active_cue
from .subtitles import SubtitleFormat, format_from_filename, parse
from .utils import find_sidecar_subtitle, format_duration, format_timestamp

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="subplay", description="Subtitle timing and playback tools.")
    parser.add_argument("--log-file", default=None, help="Write a rotating log to this path.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug details.")
    sub = parser.add_subparsers(dest="command", required=True)

    cues = sub.add_parser("cues", help="List cues or show the active cue at a time.")
    cues.add_argument("file", help="Subtitle file (.srt, .vtt, .ass, .ssa).")
    cues.add_argument(
        "--format",
        choices=[f.value for f in SubtitleFormat],
        default=None,
        help="Override the format guessed from the extension.",
    )
    cues.add_argument("--at", type=float, default=None, help="Playback time in seconds.")
    cues.add_argument("--delay", type=float, default=0.0, help="Subtitle delay in milliseconds.")
    cues.add_argument("--json", action="store_true", help="Emit JSON instead of text.")
    cues.add_argument("--encoding", default="utf-8-sig")

    play = sub.add_parser("play", help="Play media through mpv and print subtitles.")
    play.add_argument(
        "media", nargs="?", default=None, help="Media file or URL (defaults to the last one played)."
    )
    play.add_argument("--subs", default=None, help="Subtitle file.")
    play.add_argument("--delay", type=float, default=None, help="Subtitle delay in milliseconds.")
    play.add_argument("--forget", action="store_true", help="Drop the saved position and rate for MEDIA.")
    return parser


def _read_subtitles(path: Path, encoding: str, fmt):
    subtitle_format = fmt or format_from_filename(path.name)
    if subtitle_format is None:
        raise ValueError(f"cannot tell subtitle format of {path.name}")
    try:
        content = path.read_text(encoding=encoding)
    except UnicodeDecodeError:
        content = path.read_text(encoding="utf-8", errors="replace")
    return parse(content, subtitle_format)


def run_cues(args, out=None) -> int:
    out = out or sys.stdout
    path = Path(args.file)
    try:
        cues = _read_subtitles(path, args.encoding, args.format)
    except (OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    if args.at is not None:
        cue = find_active_cue(cues, args.at * 1000.0, args.delay)
        if args.json:
            payload = None if cue is None else {"start_ms": cue.start_ms, "end_ms": cue.end_ms, "text": cue.text}
            print(json.dumps(payload, ensure_ascii=False), file=out)
        elif cue is not None:
            print(cue.text, file=out)
        return EXIT_OK

    if args.json:
        rows = [{"start_ms": c.start_ms, "end_ms": c.end_ms, "text": c.text} for c in cues]
        print(json.dumps(rows, ensure_ascii=False, indent=2), file=out)
        return EXIT_OK
    for i, cue in enumerate(cues, 1):
        text = cue.text.replace("\n", " / ")
        print(f"{i:>4}  {format_timestamp(cue.start_ms)} --> {format_timestamp(cue.end_ms)}  {text}", file=out)
    return EXIT_OK


def resolve_play_source(args, store=None):
    """Fill in ``args.media`` and ``args.subs`` for ``subplay play``.

    Without MEDIA the last session is reopened with its subtitle file.
    Without ``--subs`` a subtitle file next to the media is used.
    Raises ValueError when there is nothing to play.
    """
    from .settings import clear_media_state, load_player_state

    if args.media is None:
        last = load_player_state(store=store)
        if last is None or not last["video_id"]:
            raise ValueError("no media given and no previous session to resume")
        args.media = last["video_id"]
        if args.subs is None:
            args.subs = last["subtitle_id"]
        logger.info("Resuming last session: %s", args.media)
    if args.forget:
        clear_media_state(args.media, store=store)
    if args.subs is None:
        sidecar = find_sidecar_subtitle(args.media)
        if sidecar is not None:
            logger.info("Using subtitle file %s", sidecar)
            args.subs = str(sidecar)
    return args


def run_play(args) -> int:
    # Deferred imports: mpv loads libmpv and Qt needs an application object.
    from PySide6.QtCore import QCoreApplication

    from .keys import KeyboardControls, MpvKeyRouter
    from .media import MpvMediaHandle
    from .session import PlayerSession
    from .settings import SettingsStore

    store = SettingsStore()
    try:
        resolve_play_source(args, store=store)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    subtitle_text = None
    subtitle_format = None
    if args.subs:
        subs_path = Path(args.subs)
        subtitle_format = format_from_filename(subs_path.name)
        if subtitle_format is None:
            print(f"error: cannot tell subtitle format of {subs_path.name}", file=sys.stderr)
            return EXIT_USAGE
        try:
            subtitle_text = subs_path.read_text(encoding="utf-8-sig", errors="replace")
        except OSError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return EXIT_USAGE

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    media = MpvMediaHandle(sid="no", osc="yes", input_default_bindings="yes", input_vo_keyboard="yes")
    session = PlayerSession(store=store)
    router = MpvKeyRouter(KeyboardControls(session), media.player)
    router.bind()
    if args.delay is not None:
        session.set_subtitle_delay(args.delay)
    session.subtitle_changed.connect(lambda text: print(text or "", flush=True))
    session.clock.ended.connect(app.quit)
    session.clock.duration_changed.connect(
        lambda ms: print(f"[duration {format_duration(ms / 1000.0)}]", file=sys.stderr)
    )

    session.load_source(
        media,
        subtitle_text,
        subtitle_format,
        media_id=args.media,
        subtitle_id=args.subs,
    )
    if not media.load(args.media):
        print(f"error: mpv could not load {args.media}", file=sys.stderr)
        router.unbind()
        media.player.terminate()
        return EXIT_USAGE
    session.clock.play()
    exit_code = app.exec()
    session.close()
    router.unbind()
    media.player.terminate()
    return int(exit_code)


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.log_file:
        from .app_logging import setup_app_logging

        setup_app_logging(args.log_file, logging.DEBUG if args.verbose else logging.INFO)
    elif args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if args.command == "cues":
        return run_cues(args)
    if args.command == "play":
        return run_play(args)
    parser.error(f"unknown command {args.command}")
    return EXIT_USAGE


if __name__ == "__main__":
    raise SystemExit(main())
