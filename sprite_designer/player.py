"""
Sprite-sheet playback.

A sprite sheet is one image tiling rows x cols same-sized frames in row-major
order. The player decodes a sheet asynchronously and replays its frames onto a
FrameSurface with a fixed-period timer on the asyncio event loop.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

import cv2
import numpy as np

from sprite_designer.constants import (
    DECODE_ERROR_MESSAGE,
    DEFAULT_FRAME_DELAY_MS,
    LOADING_MESSAGE,
    MIN_FRAME_DELAY_MS,
)
from sprite_designer.errors import ImageDecodeError
from sprite_designer.image_io import decode_image_async
from sprite_designer.models import positive_int

logger = logging.getLogger(__name__)

Decoder = Callable[[str], Awaitable[np.ndarray]]


@dataclass(frozen=True)
class FrameRect:
    x: int
    y: int
    width: int
    height: int


def effective_frame_delay(requested_ms: float | None) -> int:
    """Timer period for a requested frame delay: floor(ms), at least MIN_FRAME_DELAY_MS."""
    if requested_ms is None:
        return MIN_FRAME_DELAY_MS
    try:
        value = float(requested_ms)
    except (TypeError, ValueError):
        return MIN_FRAME_DELAY_MS
    if not math.isfinite(value):
        return MIN_FRAME_DELAY_MS
    return max(MIN_FRAME_DELAY_MS, math.floor(value))


def frame_size(image_width: int, image_height: int, rows: int, cols: int) -> tuple[int, int]:
    """(width, height) of one frame; remainder pixels at the right and bottom are ignored."""
    return (max(1, image_width // positive_int(cols)),
            max(1, image_height // positive_int(rows)))


def frame_rect(frame: int, image_width: int, image_height: int, rows: int, cols: int) -> FrameRect:
    """
    Source rectangle of a frame within the sheet.

    Args:
        frame: 0-based frame index, wrapped to the number of frames
        image_width, image_height: Size of the whole sheet
        rows, cols: Sheet layout

    Returns:
        The frame's rectangle in sheet coordinates
    """
    safe_rows = positive_int(rows)
    safe_cols = positive_int(cols)
    width, height = frame_size(image_width, image_height, safe_rows, safe_cols)
    index = frame % (safe_rows * safe_cols)
    return FrameRect(x=(index % safe_cols) * width, y=(index // safe_cols) * height, width=width, height=height)


def split_frames(image: np.ndarray, rows: int, cols: int) -> list[np.ndarray]:
    """
    Cut a sheet into its frames, in playback order.

    Frames that fall entirely outside the image (more rows or cols than pixels)
    are left out.
    """
    height, width = image.shape[:2]
    total = positive_int(rows) * positive_int(cols)
    frames = []
    for i in range(total):
        rect = frame_rect(i, width, height, rows, cols)
        frame = image[rect.y:rect.y + rect.height, rect.x:rect.x + rect.width]
        if frame.size == 0:
            continue
        frames.append(frame.copy())
    return frames


class FrameSurface:
    """
    BGRA drawing target for one player.

    A display scale above 1 magnifies blits with nearest-neighbour sampling so
    pixel art stays crisp.
    """

    def __init__(self, scale: int = 1):
        self.scale = positive_int(scale)
        self.pixels = np.zeros((1, 1, 4), dtype=np.uint8)

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    def resize(self, width: int, height: int) -> None:
        """Resize to a logical size; the backing store is scaled by the display scale."""
        shape = (height * self.scale, width * self.scale, 4)
        if self.pixels.shape != shape:
            self.pixels = np.zeros(shape, dtype=np.uint8)

    def clear(self) -> None:
        self.pixels[:] = 0

    def blit(self, image: np.ndarray, rect: FrameRect) -> None:
        """Copy a rectangle of the image to the surface origin."""
        region = image[rect.y:rect.y + rect.height, rect.x:rect.x + rect.width]
        if region.size == 0:
            return
        if self.scale != 1:
            region = cv2.resize(
                region,
                (region.shape[1] * self.scale, region.shape[0] * self.scale),
                interpolation=cv2.INTER_NEAREST,
            )
        h = min(region.shape[0], self.pixels.shape[0])
        w = min(region.shape[1], self.pixels.shape[1])
        self.pixels[:h, :w] = region[:h, :w]


class PlayerState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    PLAYING = "playing"
    ERROR = "error"


class SpriteSheetPlayer:
    """
    Replays a sprite sheet as a looping animation.

    Every call to set_source starts a new decode tagged with an epoch number.
    A decode that finishes after a newer source was requested is discarded, so
    the last requested source always wins regardless of completion order. The
    animation timer is cancelled before any new one is armed, and close()
    cancels it for good.

    Example:
        >>> async def preview(path):
        >>>     with SpriteSheetPlayer(frame_delay_ms=100) as player:
        >>>         player.set_source(path, rows=2, cols=4)
        >>>         await player.load_task
        >>>         await asyncio.sleep(1.0)
        >>>         print(player.frame_label)
    """

    def __init__(
        self,
        surface: FrameSurface | None = None,
        *,
        frame_delay_ms: float = DEFAULT_FRAME_DELAY_MS,
        decoder: Decoder = decode_image_async,
        loop: asyncio.AbstractEventLoop | None = None,
        static: bool = False,
        on_frame: Callable[[SpriteSheetPlayer], None] | None = None,
    ):
        """
        Args:
            surface: Drawing target, a new FrameSurface if not given
            frame_delay_ms: Requested time between frames
            decoder: Coroutine function decoding a source into a BGRA array
            loop: Event loop for decodes and the timer, the running loop if not given
            static: Show the whole sheet instead of animating its frames
            on_frame: Called after every redraw of the surface
        """
        self.surface = surface or FrameSurface()
        self.static = static
        self.on_frame = on_frame
        self._decoder = decoder
        self._loop = loop
        self._frame_delay_ms = effective_frame_delay(frame_delay_ms)

        self._src: str | None = None
        self._rows = 1
        self._cols = 1
        self._epoch = 0
        self._image: np.ndarray | None = None
        self._state = PlayerState.IDLE
        self._error: str | None = None
        self._frame_index = 0
        self._timer: asyncio.TimerHandle | None = None
        self._deadline = 0.0
        self.load_task: asyncio.Task | None = None

    def __enter__(self) -> SpriteSheetPlayer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def state(self) -> PlayerState:
        return self._state

    @property
    def image(self) -> np.ndarray | None:
        """The decoded sheet currently driving the surface."""
        return self._image

    @property
    def src(self) -> str | None:
        return self._src

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def frame_index(self) -> int:
        return self._frame_index

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def total_frames(self) -> int:
        return self._rows * self._cols

    @property
    def frame_delay_ms(self) -> int:
        return self._frame_delay_ms

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    @property
    def frame_label(self) -> str:
        """1-based frame counter, e.g. "Frame 3 / 8"."""
        return f"Frame {min(self._frame_index + 1, self.total_frames)} / {self.total_frames}"

    @property
    def status_message(self) -> str | None:
        """Text to show instead of the surface, None when a frame is on display."""
        if self._state is PlayerState.ERROR:
            return self._error
        if self._state is PlayerState.LOADING:
            return LOADING_MESSAGE
        return None

    def set_source(self, src: str, rows: int = 1, cols: int = 1) -> None:
        """
        Show a new sheet or a new layout of the current one.

        Changing rows or cols of an already decoded source keeps the decoded
        image; changing src starts a new decode. Either way the frame index
        restarts at 0.
        """
        safe_rows = positive_int(rows)
        safe_cols = positive_int(cols)
        if (src, safe_rows, safe_cols) == (self._src, self._rows, self._cols) and self._state is not PlayerState.IDLE:
            return

        self._cancel_timer()
        self._frame_index = 0
        self._rows = safe_rows
        self._cols = safe_cols

        if src == self._src:
            if self._image is not None:
                self._start_playback()
            # Loading picks up the new layout when it completes; errors wait for a new src
            return

        self._src = src
        self._epoch += 1
        self._image = None
        self._error = None
        self._state = PlayerState.LOADING
        self.load_task = self._get_loop().create_task(self._load(self._epoch, src))

    def set_frame_delay(self, frame_delay_ms: float) -> None:
        """Change the animation speed, re-arming a running timer with the new period."""
        delay = effective_frame_delay(frame_delay_ms)
        if delay == self._frame_delay_ms:
            return
        self._frame_delay_ms = delay
        if self._timer is not None:
            self._cancel_timer()
            self._arm_timer()

    def advance(self) -> None:
        """Step to the next frame, wrapping to the first."""
        self._frame_index = (self._frame_index + 1) % self.total_frames
        self.render()

    def render(self) -> None:
        """Draw the current frame (or the whole sheet in static mode) onto the surface."""
        if self._image is None:
            return
        height, width = self._image.shape[:2]
        if self.static:
            rect = FrameRect(0, 0, width, height)
        else:
            rect = frame_rect(self._frame_index, width, height, self._rows, self._cols)
        self.surface.resize(rect.width, rect.height)
        self.surface.clear()
        self.surface.blit(self._image, rect)
        if self.on_frame is not None:
            self.on_frame(self)

    def close(self) -> None:
        """Stop the animation and ignore any decode still in flight."""
        self._cancel_timer()
        self._epoch += 1
        self._image = None
        self._src = None
        self._state = PlayerState.IDLE

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    async def _load(self, epoch: int, src: str) -> None:
        try:
            image = await self._decoder(src)
        except ImageDecodeError as e:
            if epoch == self._epoch:
                logger.warning("Failed to decode sprite sheet: %s", e)
                self._fail()
            return
        except Exception:
            # Decoders may be injected; anything they raise is a failed load
            if epoch == self._epoch:
                logger.exception("Unexpected error while decoding sprite sheet")
                self._fail()
            return

        if epoch != self._epoch:
            logger.debug("Discarding decode of superseded source (epoch %d, current %d)", epoch, self._epoch)
            return

        self._image = image
        self._start_playback()

    def _fail(self) -> None:
        self._image = None
        self._error = DECODE_ERROR_MESSAGE
        self._state = PlayerState.ERROR

    def _start_playback(self) -> None:
        self._state = PlayerState.READY
        self.render()
        self._arm_timer()

    def _arm_timer(self) -> None:
        if self.static or self._image is None or self.total_frames <= 1:
            return
        loop = self._get_loop()
        self._deadline = loop.time() + self._frame_delay_ms / 1000.0
        self._timer = loop.call_at(self._deadline, self._tick)
        self._state = PlayerState.PLAYING

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._state is PlayerState.PLAYING:
            self._state = PlayerState.READY

    def _tick(self) -> None:
        self._timer = None
        self.advance()
        # on_frame may have stopped playback or armed a new timer
        if self._state is not PlayerState.PLAYING or self._timer is not None:
            return

        # Fixed period measured from the previous deadline, not from the end of the redraw
        loop = self._get_loop()
        period = self._frame_delay_ms / 1000.0
        self._deadline += period
        if self._deadline < loop.time():
            self._deadline = loop.time() + period
        self._timer = loop.call_at(self._deadline, self._tick)
