"""
Command-line entry point.

Usage::

    pulsescope analyze track.wav --frame-size 1024 --window hann
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from pulsescope.config import AnalysisConfig
from pulsescope.core.stream import RealtimeAnalyzer
from pulsescope.core.window import WindowKind
from pulsescope.errors import AnalysisError
from pulsescope.io.source import BufferedSoundSource

logger = logging.getLogger("pulsescope")

COLUMNS = ("time", "rms", "centroid", "flatness", "rolloff", "kick", "snare", "hihat", "hfc")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pulsescope",
        description="Frame-by-frame spectral, onset and beat analysis of an audio file.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="print per-frame features as TSV")
    analyze.add_argument("audio_path", help="audio file to analyze (wav, mp3, flac)")
    analyze.add_argument("--frame-size", type=int, default=1024)
    analyze.add_argument("--hop", type=int, default=None, help="hop size (default: frame size)")
    analyze.add_argument(
        "--window",
        default=WindowKind.HANN.value,
        choices=[kind.value for kind in WindowKind],
    )
    analyze.add_argument("--subbands", type=int, default=None)
    analyze.add_argument("--history", type=int, default=None)
    analyze.add_argument("--sr", type=int, default=None, help="resample to this rate")
    analyze.add_argument("--channel", type=int, default=None, help="channel to analyze (default: mix)")
    analyze.add_argument("--limit", type=int, default=None, help="stop after this many frames")
    return parser


def _format_row(live) -> str:
    f = live.features
    values = (
        f"{live.time_sec:.3f}",
        f"{f.rms:.6f}",
        f"{f.spectral_centroid:.3f}",
        f"{f.spectral_flatness:.6f}",
        f"{f.spectral_rolloff:.4f}",
        str(int(f.is_kick)),
        str(int(f.is_snare)),
        str(int(f.is_hihat)),
        f"{f.high_frequency_content:.3f}",
    )
    return "\t".join(values)


def run_analyze(args: argparse.Namespace) -> int:
    config = AnalysisConfig.from_mapping(
        {
            "frame_size": args.frame_size,
            "window": args.window,
            "subband_count": args.subbands,
            "history_depth": args.history,
        }
    )
    source = BufferedSoundSource.from_file(args.audio_path, sr=args.sr)

    print("\t".join(COLUMNS))
    with RealtimeAnalyzer(source.sample_rate, hop_size=args.hop, config=config) as analyzer:
        for live in analyzer.process_source(source, channel=args.channel):
            print(_format_row(live))
            if args.limit is not None and live.chunk_index >= args.limit:
                break
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        return run_analyze(args)
    except AnalysisError as exc:
        logger.error("%s", exc)
        return 2
    except FileNotFoundError as exc:
        logger.error("audio file not found: %s", exc.filename or args.audio_path)
        return 1


if __name__ == "__main__":
    sys.exit(main())
