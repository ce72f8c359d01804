"""Error taxonomy for the United Colors effect."""


class UnitedColorsError(Exception):
    """Base class for all expected, user-reportable failures."""


class DecodeError(UnitedColorsError):
    """Input image is missing, corrupt or unreadable."""


class EncodeError(UnitedColorsError):
    """Output image could not be written."""


class UnsupportedFormatError(UnitedColorsError):
    """Image layout the effect cannot process (channel count or bit depth)."""
