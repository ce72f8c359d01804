"""OpenCV preview window with an intensity trackbar bound to an EffectSession."""

import logging

import cv2

from effects.united_colors import EFFECT_NAME, PARAMS
from engine.session import EffectSession

logger = logging.getLogger(__name__)

WINDOW_TITLE = f"{EFFECT_NAME} Effect"
TRACKBAR_NAME = PARAMS["intensity"]["label"]
KEY_ESC = 27
POLL_MS = 50


class EffectWindow:
    """Single window: image surface plus an "Effect" slider (0-100).

    Every slider move re-renders through the session and redraws. ``run``
    blocks until a key press (confirm), window close (confirm) or Esc
    (cancel).
    """

    def __init__(self, session: EffectSession, title: str = WINDOW_TITLE):
        self.session = session
        self.title = title
        self.cancelled = False

    def _show(self, image):
        cv2.imshow(self.title, image)

    def _on_trackbar(self, pos: int):
        self.session.on_intensity_changed(pos)

    def _closed(self) -> bool:
        try:
            return cv2.getWindowProperty(self.title, cv2.WND_PROP_VISIBLE) < 1
        except cv2.error:
            return True

    def run(self) -> bool:
        """Show the window and wait. Returns True if the user confirmed."""
        spec = PARAMS["intensity"]
        self.session.on_output = self._show

        cv2.namedWindow(self.title, cv2.WINDOW_AUTOSIZE)
        cv2.createTrackbar(
            TRACKBAR_NAME, self.title, spec["default"], spec["max"], self._on_trackbar
        )
        self._show(self.session.output)

        try:
            while True:
                key = cv2.waitKey(POLL_MS)
                if key != -1:
                    self.cancelled = (key & 0xFF) == KEY_ESC
                    break
                if self._closed():
                    break
        finally:
            self.session.on_output = None
            self.close()

        if self.cancelled:
            logger.info("Preview cancelled at intensity %d%%", self.session.intensity)
        return not self.cancelled

    def close(self):
        try:
            cv2.destroyWindow(self.title)
        except cv2.error as e:
            logger.debug("Window '%s' already closed: %s", self.title, e)
