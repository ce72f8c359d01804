"""Path handling and validation gates for United Colors."""

import json
import os
import re
from pathlib import Path

MAX_INPUT_SIZE = 200 * 1024 * 1024  # 200 MB
ALLOWED_INPUT_EXTENSIONS = {
    ".bmp",
    ".dib",
    ".jpg",
    ".jpeg",
    ".jpe",
    ".jp2",
    ".png",
    ".webp",
    ".tif",
    ".tiff",
    ".pbm",
    ".pgm",
    ".ppm",
    ".pnm",
    ".pxm",
    ".pfm",
    ".sr",
    ".ras",
    ".hdr",
    ".pic",
    ".exr",
}

LOSSY_OUTPUT_EXTENSIONS = {".jpg", ".jpeg", ".jpe", ".webp"}
LOSSLESS_OUTPUT_EXTENSIONS = {".png", ".bmp", ".tif", ".tiff"}
ALLOWED_OUTPUT_EXTENSIONS = LOSSY_OUTPUT_EXTENSIONS | LOSSLESS_OUTPUT_EXTENSIONS

BLOCKED_OUTPUT_PREFIXES = (
    "/System",
    "/Library",
    "/usr",
    "/bin",
    "/sbin",
    "/etc",
    "/private/etc",
)


def escape_backslashes(file_path: str) -> str:
    """Double every backslash in ``file_path``."""
    return file_path.replace("\\", "\\\\")


def platform_path(file_path: str) -> str:
    """Return ``file_path`` in the form the platform codec expects."""
    if os.name == "nt":
        return escape_backslashes(file_path)
    return file_path


def _unsafe_name(name: str) -> bool:
    return ".." in name or "/" in name or "\\" in name or "\x00" in name


def validate_input_path(path: str) -> list[str]:
    """Validate an input image path. Returns list of errors (empty = valid).

    Checks:
    - File exists and is a regular file
    - Extension in whitelist (no extension is fine: the decoder sniffs content)
    - File size <= MAX_INPUT_SIZE
    """
    errors: list[str] = []
    p = Path(path)

    if not p.exists():
        errors.append(f"File not found: {path}")
        return errors

    if not p.is_file():
        errors.append(f"Not a regular file: {path}")
        return errors

    ext = p.suffix.lower()
    if ext and ext not in ALLOWED_INPUT_EXTENSIONS:
        errors.append(
            f"Extension '{ext}' not allowed. Allowed: {sorted(ALLOWED_INPUT_EXTENSIONS)}"
        )

    size = p.stat().st_size
    if size > MAX_INPUT_SIZE:
        size_mb = size / (1024 * 1024)
        errors.append(
            f"File too large: {size_mb:.1f} MB (max {MAX_INPUT_SIZE // (1024 * 1024)} MB)"
        )

    return errors


def validate_output_path(path: str) -> list[str]:
    """Validate an output image path. Returns list of errors (empty = valid).

    Checks:
    - Not a system directory
    - Extension in whitelist
    - Parent directory exists and is writable
    - Filename is safe (no traversal)
    """
    errors: list[str] = []
    p = Path(path)

    resolved = str(p.resolve())
    for prefix in BLOCKED_OUTPUT_PREFIXES:
        if resolved.startswith(prefix + os.sep) or resolved == prefix:
            errors.append(f"Cannot write to system directory: {prefix}")
            return errors

    ext = p.suffix.lower()
    if ext not in ALLOWED_OUTPUT_EXTENSIONS:
        errors.append(f"Output extension '{ext}' not allowed.")

    parent = p.resolve().parent
    if not parent.exists():
        errors.append(f"Output directory does not exist: {parent}")
    elif not os.access(str(parent), os.W_OK):
        errors.append(f"Output directory is not writable: {parent}")

    if _unsafe_name(p.name):
        errors.append(f"Unsafe output filename: {p.name}")

    return errors


# --- PII stripping for Sentry and crash dumps ---

_HOME = os.path.expanduser("~")
_USERNAME = os.path.basename(_HOME)
_PATH_PATTERN = re.compile(r"/Users/[^/\s]+|/home/[^/\s]+|C:\\\\Users\\\\[^\\\s]+")
_SENSITIVE_KEYS = {"token", "auth", "key", "secret", "password", "dsn"}


def _scrub_dict(d: dict):
    """Redact values for keys that look sensitive."""
    for key in list(d.keys()):
        if any(s in key.lower() for s in _SENSITIVE_KEYS):
            d[key] = "<REDACTED>"


def strip_pii(event: dict, hint: dict) -> dict:
    """Sentry before_send hook. Strips home paths and secrets.

    Also usable for crash dump sanitization.
    """
    event_str = json.dumps(event)
    event_str = event_str.replace(_HOME, "<HOME>")
    if len(_USERNAME) > 2:
        event_str = event_str.replace(_USERNAME, "<USER>")
    event_str = _PATH_PATTERN.sub("<REDACTED_PATH>", event_str)
    event = json.loads(event_str)

    _scrub_dict(event.get("extra", {}))
    for ctx in event.get("contexts", {}).values():
        if isinstance(ctx, dict):
            _scrub_dict(ctx)
    return event
