"""Tests for stick policies, validation and the control ticks."""

import time

import pytest

from groundstation.config import AXIS_OFFSET
from groundstation.events import Axis, AxisChanged
from groundstation.flight_control import (
    ControlCommand, Direction, FlightControlLoop, throttle_yaw_commands, translation_commands, validate
)
from groundstation.input_controller import InputEventRouter
from groundstation.shared_state import SharedState, StickPair


class TestValidate:
    @pytest.mark.parametrize("value", [-10 * AXIS_OFFSET, -AXIS_OFFSET - 1, AXIS_OFFSET + 1, 10 ** 9])
    def test_out_of_range_saturates(self, value) -> None:
        assert validate(value) == 100

    def test_full_deflection(self) -> None:
        assert validate(AXIS_OFFSET) == 100
        assert validate(-AXIS_OFFSET) == 100

    def test_small_values_are_zero(self) -> None:
        assert validate(0) == 0
        assert validate(-500) == 0
        assert validate(3000) == 0

    def test_midrange(self) -> None:
        assert validate(AXIS_OFFSET / 2) == 50
        assert validate(-AXIS_OFFSET / 2) == 50

    def test_always_in_range_and_monotonic(self) -> None:
        previous = 0
        for value in range(0, 2 * AXIS_OFFSET, 97):
            result = validate(value)
            assert 0 <= result <= 100
            assert result >= previous
            assert validate(-value) == result
            previous = result

    def test_custom_offset(self) -> None:
        assert validate(50, offset=100) == 50
        assert validate(500, offset=100) == 100


class TestTranslationPolicy:
    @pytest.mark.parametrize("y", [-10, -9, 0, 5, 10])
    def test_vertical_deadzone_sends_explicit_stop(self, y) -> None:
        forward_back, _ = translation_commands(StickPair(0, y))
        assert forward_back == ControlCommand(Direction.FORWARD, 0)

    def test_backward_below_deadzone(self) -> None:
        forward_back, _ = translation_commands(StickPair(0, -11))
        assert forward_back.direction == Direction.BACKWARD

        forward_back, _ = translation_commands(StickPair(0, -AXIS_OFFSET))
        assert forward_back == ControlCommand(Direction.BACKWARD, 100)

    def test_forward_above_deadzone(self) -> None:
        forward_back, _ = translation_commands(StickPair(0, 20000))
        assert forward_back == ControlCommand(Direction.FORWARD, validate(20000))
        assert forward_back.magnitude > 0

    @pytest.mark.parametrize("x", [-10, 0, 10])
    def test_horizontal_deadzone(self, x) -> None:
        _, left_right = translation_commands(StickPair(x, 0))
        assert left_right == ControlCommand(Direction.RIGHT, 0)

    def test_left_and_right(self) -> None:
        _, left_right = translation_commands(StickPair(-20000, 0))
        assert left_right == ControlCommand(Direction.LEFT, validate(-20000))

        _, left_right = translation_commands(StickPair(20000, 0))
        assert left_right == ControlCommand(Direction.RIGHT, validate(20000))

    def test_inverted_vertical_axis(self) -> None:
        forward_back, _ = translation_commands(StickPair(0, -20000), invert_y=True)
        assert forward_back.direction == Direction.FORWARD

        forward_back, _ = translation_commands(StickPair(0, 20000), invert_y=True)
        assert forward_back.direction == Direction.BACKWARD


class TestThrottleYawPolicy:
    @pytest.mark.parametrize("y", [-1000, -999, 0, 500, 1000])
    def test_wide_vertical_deadzone(self, y) -> None:
        up_down, _ = throttle_yaw_commands(StickPair(0, y))
        assert up_down == ControlCommand(Direction.UP, 0)

    def test_down_and_up(self) -> None:
        up_down, _ = throttle_yaw_commands(StickPair(0, -1001))
        assert up_down.direction == Direction.DOWN

        up_down, _ = throttle_yaw_commands(StickPair(0, 1001))
        assert up_down.direction == Direction.UP

    @pytest.mark.parametrize("x", [-20, 0, 20])
    def test_yaw_deadzone(self, x) -> None:
        _, yaw = throttle_yaw_commands(StickPair(x, 0))
        assert yaw == ControlCommand(Direction.CLOCKWISE, 0)

    def test_rotation(self) -> None:
        _, yaw = throttle_yaw_commands(StickPair(21, 0))
        assert yaw.direction == Direction.CLOCKWISE

        _, yaw = throttle_yaw_commands(StickPair(-21, 0))
        assert yaw.direction == Direction.COUNTER_CLOCKWISE

    def test_rotating_does_not_climb(self) -> None:
        up_down, yaw = throttle_yaw_commands(StickPair(AXIS_OFFSET, 900))
        assert up_down == ControlCommand(Direction.UP, 0)
        assert yaw == ControlCommand(Direction.CLOCKWISE, 100)


class TestFlightControlLoop:
    def test_ticks_send_both_axes_of_their_stick(self, fake_link) -> None:
        state = SharedState()
        state.set_axis("right_y", 30000)
        state.set_axis("left_x", -30000)
        loop = FlightControlLoop(state, fake_link)

        loop.tick_translation()
        loop.tick_throttle_yaw()

        assert fake_link.moves() == [
            (Direction.FORWARD, validate(30000)),
            (Direction.RIGHT, 0),
            (Direction.UP, 0),
            (Direction.COUNTER_CLOCKWISE, validate(30000)),
        ]

    def test_axis_event_drives_next_tick(self, fake_link) -> None:
        state = SharedState()
        router = InputEventRouter(state, fake_link)
        loop = FlightControlLoop(state, fake_link)

        router.dispatch(AxisChanged(Axis.RIGHT_Y, -500))
        forward_back, _ = loop.tick_translation()
        assert forward_back == ControlCommand(Direction.BACKWARD, validate(-500, AXIS_OFFSET))

        router.dispatch(AxisChanged(Axis.RIGHT_Y, 0))
        forward_back, _ = loop.tick_translation()
        assert forward_back == ControlCommand(Direction.FORWARD, 0)

    def test_link_errors_do_not_stop_the_tick(self) -> None:
        class BrokenLink:
            def __init__(self):
                self.attempts = 0

            def move(self, direction, magnitude):
                self.attempts += 1
                raise OSError("network unreachable")

        link = BrokenLink()
        loop = FlightControlLoop(SharedState(), link)
        loop.tick_translation()
        loop.tick_throttle_yaw()
        assert link.attempts == 4

    def test_scheduled_ticks(self, fake_link, shutdown) -> None:
        state = SharedState()
        state.set_axis("right_y", -AXIS_OFFSET)
        loop = FlightControlLoop(state, fake_link, shutdown, interval=0.05)

        loop.start()
        try:
            time.sleep(0.3)
        finally:
            loop.stop()

        moves = fake_link.moves()
        assert moves.count((Direction.BACKWARD, 100)) >= 3
        assert moves.count((Direction.UP, 0)) >= 3

        settled = len(fake_link.moves())
        time.sleep(0.15)
        assert len(fake_link.moves()) == settled
