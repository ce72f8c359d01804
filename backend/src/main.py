"""Command-line entry point: load, preview with a slider, save once."""

import argparse
import logging
import os
import sys
from pathlib import Path

import sentry_sdk

from _version import __version__
from diagnostics import (
    init_diagnostics,
    track_session,
    untrack_session,
    write_crash_report,
)
from display.window import EffectWindow
from engine.session import EffectSession
from errors import DecodeError, EncodeError, UnitedColorsError
from image import codec
from security import strip_pii, validate_input_path, validate_output_path

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

USAGE_MESSAGE = "You should write path to input & output files."
PROMPT_MESSAGE = "Input file path:"
SAME_DIR_MESSAGE = "Modified image will be saved in the same directory."
NO_INPUT_MESSAGE = "No input file path given"

_CONSENT_PATH = "~/.united-colors/telemetry_consent"


class _ArgumentParser(argparse.ArgumentParser):
    """Reports usage problems on stdout with a plain message."""

    def error(self, message):
        print(f"{USAGE_MESSAGE} ({message})")
        self.exit(EXIT_FAILURE)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="united-colors",
        description="Preview the United Colors effect on an image and save the result.",
    )
    parser.add_argument("input", nargs="?", help="input image (prompted if omitted)")
    parser.add_argument(
        "output",
        nargs="?",
        help="output image (default: <input>-1.jpg, or -1.png with alpha)",
    )
    parser.add_argument(
        "channels",
        nargs="?",
        choices=("3", "4"),
        default="3",
        help="3 = colour, 4 = keep alpha channel (default: 3)",
    )
    parser.add_argument(
        "--saturate",
        action="store_true",
        help="clamp out-of-range values instead of wrapping them",
    )
    parser.add_argument("--version", action="version", version=__version__)
    return parser


def prompt_path() -> str:
    print(PROMPT_MESSAGE)
    try:
        return input().strip()
    except EOFError:
        raise DecodeError(NO_INPUT_MESSAGE) from None


def _open_session(path: str, channels: int, overflow: str) -> EffectSession:
    errors = validate_input_path(path)
    if errors:
        raise DecodeError("Wrong input file path. " + "; ".join(errors))
    return EffectSession.open(path, channels=channels, overflow=overflow)


def load_session(
    path: str | None, channels: int, overflow: str
) -> tuple[EffectSession, str]:
    """Open the input, prompting for it (with one retry) when not given."""
    if path is not None:
        return _open_session(path, channels, overflow), path

    path = prompt_path()
    try:
        return _open_session(path, channels, overflow), path
    except DecodeError as e:
        print(f"Error : {e}")
        path = prompt_path()
        return _open_session(path, channels, overflow), path


def run(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    channels = int(args.channels)
    overflow = "saturate" if args.saturate else "wrap"

    try:
        session, input_path = load_session(args.input, channels, overflow)
        track_session(session)

        if args.output is None:
            print(SAME_DIR_MESSAGE)
            output_path = codec.default_output_path(input_path, session.channels)
        else:
            output_path = codec.resolve_output_path(args.output, session.channels)

        errors = validate_output_path(output_path)
        if errors:
            raise EncodeError(
                "Can't save changed image. Check output file path. " + "; ".join(errors)
            )

        if not EffectWindow(session).run():
            print("Cancelled, nothing was written.")
            return EXIT_SUCCESS

        written = session.save(output_path)
    except UnitedColorsError as e:
        logger.error("%s: %s", type(e).__name__, e)
        print(e)
        return EXIT_FAILURE
    except Exception as e:
        logger.exception("Unexpected failure")
        sentry_sdk.capture_exception(e)
        print(f"Unexpected error: {type(e).__name__}: {e}")
        try:
            print(f"Crash report: {write_crash_report(type(e), e, e.__traceback__)}")
        except OSError as report_error:
            logger.warning("Crash report not written: %s", report_error)
        return EXIT_FAILURE
    finally:
        untrack_session()

    print(f"Saved {written}")
    return EXIT_SUCCESS


def _init_sentry():
    """Consent-gated Sentry init. Without consent the SDK is a no-op."""
    dsn = ""
    consent_path = Path(os.path.expanduser(_CONSENT_PATH))
    if consent_path.exists() and consent_path.read_text().strip() == "yes":
        dsn = os.environ.get("SENTRY_DSN", "")

    sentry_sdk.init(
        dsn=dsn,
        release=f"united-colors@{__version__}",
        environment=os.environ.get("SENTRY_ENV", "development"),
        traces_sample_rate=0.1,
        before_send=strip_pii,
        max_breadcrumbs=50,
    )


def main():
    _init_sentry()
    init_diagnostics()
    sys.exit(run())


if __name__ == "__main__":
    main()
