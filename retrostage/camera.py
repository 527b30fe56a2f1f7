"""Stage camera: boundary easing, scroll windows and player screen placement."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "SCREEN_YSIZE",
    "DEFAULT_SCREEN_XSIZE",
    "SCREEN_SCROLL_UP",
    "SCREEN_SCROLL_DOWN",
    "CameraTarget",
    "Camera",
]

SCREEN_YSIZE = 240
DEFAULT_SCREEN_XSIZE = 424
SCREEN_SCROLL_UP = SCREEN_YSIZE // 2 - 16
SCREEN_SCROLL_DOWN = SCREEN_YSIZE // 2 + 16

_SCROLL_STEP = 16
_FAST_X_DISTANCE = 25
_FAST_Y_MARGIN = 17
_TRACK_MOVE = 32
_MOVE_EASE = 6
_LAG_LIMIT = 64
_LAG_STEP = 2
_LAG_SPEED = 0x5F5C2


@dataclass
class CameraTarget:
    """The player a camera follows; positions and speeds are 16.16 fixed point.

    ``direction`` is the facing of the entity the player is bound to.
    The camera writes ``screen_x_pos`` and ``screen_y_pos``.
    """

    x_pos: int = 0
    y_pos: int = 0
    x_velocity: int = 0
    speed: int = 0
    gravity: int = 1
    direction: int = 0
    look_pos: int = 0
    track_scroll: int = 0
    screen_x_pos: int = 0
    screen_y_pos: int = 0


@dataclass
class Camera:
    """Scroll state of a stage camera and the boundaries it eases towards."""

    screen_width: int = DEFAULT_SCREEN_XSIZE
    style: int = 0
    enabled: int = 1
    adjust_y: int = 0
    x_scroll_offset: int = 0
    y_scroll_offset: int = 0
    x_scroll_a: int = 0
    x_scroll_b: int = -1
    y_scroll_a: int = 0
    y_scroll_b: int = SCREEN_YSIZE
    y_scroll_move: int = 0
    shake_x: int = 0
    shake_y: int = 0
    lag: int = 0
    lag_style: int = 0
    x_boundary1: int = 0
    new_x_boundary1: int = 0
    y_boundary1: int = 0
    new_y_boundary1: int = 0
    x_boundary2: int = 0
    new_x_boundary2: int = 0
    y_boundary2: int = 0
    new_y_boundary2: int = 0

    def __post_init__(self) -> None:
        if self.screen_width <= 0:
            raise ValueError("screen width must be positive")
        if self.x_scroll_b == -1:
            self.x_scroll_b = self.screen_width

    @property
    def center_x(self) -> int:
        return self.screen_width // 2

    @property
    def scroll_left(self) -> int:
        return self.center_x - 8

    @property
    def scroll_right(self) -> int:
        return self.center_x + 8

    def reset(self) -> None:
        """Return the scroll state to how a freshly loaded stage starts."""
        self.enabled = 1
        self.adjust_y = 0
        self.x_scroll_offset = 0
        self.y_scroll_offset = 0
        self.y_scroll_a = 0
        self.y_scroll_b = SCREEN_YSIZE
        self.x_scroll_a = 0
        self.x_scroll_b = self.screen_width
        self.y_scroll_move = 0
        self.shake_x = 0
        self.shake_y = 0

    # -- boundaries ---------------------------------------------------------

    def _ease_y_boundaries(self) -> None:
        offset = self.y_scroll_offset
        bottom = offset + SCREEN_YSIZE
        if self.new_y_boundary1 > self.y_boundary1:
            self.y_boundary1 = offset if offset <= self.new_y_boundary1 else self.new_y_boundary1
        if self.new_y_boundary1 < self.y_boundary1:
            if offset <= self.y_boundary1:
                self.y_boundary1 -= 1
            else:
                self.y_boundary1 = self.new_y_boundary1
        if self.new_y_boundary2 < self.y_boundary2:
            if bottom >= self.y_boundary2 or bottom <= self.new_y_boundary2:
                self.y_boundary2 -= 1
            else:
                self.y_boundary2 = bottom
        if self.new_y_boundary2 > self.y_boundary2:
            if bottom >= self.y_boundary2:
                self.y_boundary2 += 1
            else:
                self.y_boundary2 = self.new_y_boundary2

    def _ease_x_boundaries(self, target: CameraTarget) -> None:
        offset = self.x_scroll_offset
        right = self.screen_width + offset
        if self.new_x_boundary1 > self.x_boundary1:
            self.x_boundary1 = offset if offset <= self.new_x_boundary1 else self.new_x_boundary1
        if self.new_x_boundary1 < self.x_boundary1:
            if offset <= self.x_boundary1:
                self.x_boundary1 -= 1
                if target.x_velocity < 0:
                    self.x_boundary1 += target.x_velocity >> 16
                    self.x_boundary1 = max(self.x_boundary1, self.new_x_boundary1)
            else:
                self.x_boundary1 = self.new_x_boundary1
        if self.new_x_boundary2 < self.x_boundary2:
            self.x_boundary2 = right if right >= self.x_boundary2 else self.new_x_boundary2
        if self.new_x_boundary2 > self.x_boundary2:
            if right >= self.x_boundary2:
                self.x_boundary2 += 1
                if target.x_velocity > 0:
                    self.x_boundary2 += target.x_velocity >> 16
                    self.x_boundary2 = min(self.x_boundary2, self.new_x_boundary2)
            else:
                self.x_boundary2 = self.new_x_boundary2

    # -- placement ----------------------------------------------------------

    def _place_x(self, target: CameraTarget, player_x: int, scroll_a: int, scroll_b: int) -> None:
        center = self.center_x
        shake = self.shake_x
        if player_x <= center + scroll_a:
            target.screen_x_pos = shake + player_x - scroll_a
            self.x_scroll_offset = scroll_a - shake
        else:
            self.x_scroll_offset = shake + player_x - center
            target.screen_x_pos = center - shake
            if player_x > scroll_b - center:
                target.screen_x_pos = shake + center + player_x - (scroll_b - center)
                self.x_scroll_offset = scroll_b - self.screen_width - shake

    def _place_y(self, target: CameraTarget, adjust: int) -> None:
        look = target.look_pos
        shake = self.shake_y
        if look + adjust <= self.y_scroll_a + SCREEN_SCROLL_UP:
            target.screen_y_pos = adjust - self.y_scroll_a - shake
            self.y_scroll_offset = shake + self.y_scroll_a
        else:
            self.y_scroll_offset = shake + adjust + look - SCREEN_SCROLL_UP
            target.screen_y_pos = SCREEN_SCROLL_UP - look - shake
            if look + adjust > self.y_scroll_b - SCREEN_SCROLL_DOWN:
                target.screen_y_pos = (
                    adjust - (self.y_scroll_b - SCREEN_SCROLL_DOWN) + shake + SCREEN_SCROLL_UP
                )
                self.y_scroll_offset = self.y_scroll_b - SCREEN_YSIZE - shake
        target.screen_y_pos -= self.adjust_y

    def _follow_y(self, target: CameraTarget, player_y: int, tracking: bool) -> None:
        scroll_a, scroll_b = self.y_scroll_a, self.y_scroll_b
        adjust = self.adjust_y + player_y
        look = target.look_pos
        amount = look + adjust - (scroll_a + SCREEN_SCROLL_UP)

        if tracking:
            self.y_scroll_move = _TRACK_MOVE
        else:
            if self.y_scroll_move == _TRACK_MOVE:
                move = 2 * ((SCREEN_SCROLL_UP - target.screen_y_pos - look) >> 1)
                self.y_scroll_move = max(-_TRACK_MOVE, min(_TRACK_MOVE, move))
            if self.y_scroll_move > 0:
                self.y_scroll_move -= _MOVE_EASE
            if self.y_scroll_move < 0:
                self.y_scroll_move += _MOVE_EASE
        move = self.y_scroll_move

        if abs(amount) >= abs(move) + _FAST_Y_MARGIN:
            scroll_a += _SCROLL_STEP if amount > 0 else -_SCROLL_STEP
            scroll_b = scroll_a + SCREEN_YSIZE
        elif move == _TRACK_MOVE:
            if look + adjust > scroll_a + move + SCREEN_SCROLL_UP:
                scroll_a = look + adjust - (move + SCREEN_SCROLL_UP)
                scroll_b = scroll_a + SCREEN_YSIZE
            if look + adjust < scroll_a + SCREEN_SCROLL_UP - move:
                scroll_a = look + adjust - (SCREEN_SCROLL_UP - move)
                scroll_b = scroll_a + SCREEN_YSIZE
        else:
            scroll_a = look + adjust + move - SCREEN_SCROLL_UP
            scroll_b = scroll_a + SCREEN_YSIZE

        if scroll_a < self.y_boundary1:
            scroll_a = self.y_boundary1
            scroll_b = self.y_boundary1 + SCREEN_YSIZE
        if scroll_b > self.y_boundary2:
            scroll_b = self.y_boundary2
            scroll_a = self.y_boundary2 - SCREEN_YSIZE
        self.y_scroll_a, self.y_scroll_b = scroll_a, scroll_b
        self._place_y(target, adjust)

    def _settle_shake(self) -> None:
        if self.shake_x:
            self.shake_x = ~self.shake_x if self.shake_x <= 0 else -self.shake_x
        if self.shake_y:
            self.shake_y = ~self.shake_y if self.shake_y <= 0 else -self.shake_y

    # -- camera styles ------------------------------------------------------

    def follow(self, target: CameraTarget) -> None:
        """Follow the target with a small dead zone, scrolling in both axes."""
        player_x = target.x_pos >> 16
        player_y = target.y_pos >> 16
        self._ease_y_boundaries()
        self._ease_x_boundaries(target)

        width = self.screen_width
        scroll_a, scroll_b = self.x_scroll_a, self.x_scroll_b
        amount = player_x - (self.center_x + scroll_a)
        if abs(amount) >= _FAST_X_DISTANCE:
            scroll_a += _SCROLL_STEP if amount > 0 else -_SCROLL_STEP
            scroll_b = width + scroll_a
        else:
            if player_x > self.scroll_right + scroll_a:
                scroll_a = player_x - self.scroll_right
                scroll_b = width + player_x - self.scroll_right
            if player_x < self.scroll_left + scroll_a:
                scroll_a = player_x - self.scroll_left
                scroll_b = width + player_x - self.scroll_left
        if scroll_a < self.x_boundary1:
            scroll_a = self.x_boundary1
            scroll_b = width + self.x_boundary1
        if scroll_b > self.x_boundary2:
            scroll_b = self.x_boundary2
            scroll_a = self.x_boundary2 - width
        self.x_scroll_a, self.x_scroll_b = scroll_a, scroll_b
        self._place_x(target, player_x, scroll_a, scroll_b)

        self._follow_y(target, player_y, bool(target.track_scroll))
        self._settle_shake()

    def follow_cd_style(self, target: CameraTarget) -> None:
        """Follow the target with the camera leading ahead at high speed."""
        player_x = target.x_pos >> 16
        player_y = target.y_pos >> 16
        self._ease_y_boundaries()
        self._ease_x_boundaries(target)

        if not target.gravity:
            if target.direction:
                self.lag_style = 2 if self.style == 3 or target.speed < -_LAG_SPEED else 0
            else:
                self.lag_style = int(self.style == 2 or target.speed > _LAG_SPEED)
        if self.lag_style == 1:
            if self.lag > -_LAG_LIMIT:
                self.lag -= _LAG_STEP
        elif self.lag_style == 2:
            if self.lag < _LAG_LIMIT:
                self.lag += _LAG_STEP
        elif not self.lag_style:
            if self.lag < 0:
                self.lag += _LAG_STEP
            if self.lag > 0:
                self.lag -= _LAG_STEP

        center = self.center_x
        shake = self.shake_x
        if player_x <= self.lag + center + self.x_boundary1:
            target.screen_x_pos = shake + player_x - self.x_boundary1
            self.x_scroll_offset = self.x_boundary1 - shake
        else:
            self.x_scroll_offset = shake + player_x - center - self.lag
            target.screen_x_pos = self.lag + center - shake
            if player_x - self.lag > self.x_boundary2 - center:
                target.screen_x_pos = shake + center + player_x - (self.x_boundary2 - center)
                self.x_scroll_offset = self.x_boundary2 - self.screen_width - shake
        self.x_scroll_a = self.x_scroll_offset
        self.x_scroll_b = self.screen_width + self.x_scroll_offset

        self._follow_y(target, player_y, target.track_scroll == 1)
        self._settle_shake()

    def follow_h_locked(self, target: CameraTarget) -> None:
        """Follow vertically only; the horizontal scroll window stays put."""
        player_x = target.x_pos >> 16
        player_y = target.y_pos >> 16
        self._ease_y_boundaries()
        self._place_x(target, player_x, self.x_scroll_a, self.x_scroll_b)
        self._follow_y(target, player_y, target.track_scroll == 1)
        self._settle_shake()

    def follow_locked(self, target: CameraTarget) -> None:
        """Keep both scroll windows fixed and only place the target on screen."""
        player_x = target.x_pos >> 16
        player_y = target.y_pos >> 16
        self._place_x(target, player_x, self.x_scroll_a, self.x_scroll_b)
        self._place_y(target, self.adjust_y + player_y)
        self._settle_shake()