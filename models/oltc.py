import logging
from typing import Dict, Optional

import utils.config as config

logger = logging.getLogger(__name__)


class OltcController:
    """
    On-load tap changer at the primary substation.

    A voltage outside the trigger band arms a delay timer. The timer is
    cancelled once the monitored voltage is back inside v_nominal +/- dead_band
    or has crossed to the other side of v_nominal.
    When the delay expires one tap step is commanded, it becomes effective
    after the mechanical delay, and further commands are blocked for
    blocking_time seconds.
    """

    def __init__(self, oltc_config: Optional[Dict] = None, initial_tap: int = 0) -> None:
        self.config = dict(config.OLTC_CONFIG if oltc_config is None else oltc_config)
        self.tap_min, self.tap_max = self.config['tap_range']
        if not self.tap_min <= initial_tap <= self.tap_max:
            raise ValueError(f'Initial tap {initial_tap} outside range {self.config["tap_range"]}')

        self.tap = initial_tap
        self.operations = 0
        self._violation_start = None
        self._violation_direction = 0
        self._pending_direction = 0
        self._pending_time = None
        self._blocked_until = float('-inf')

    @property
    def ratio(self) -> float:
        """Voltage ratio applied to the substation busbar."""
        return 1 + self.tap * self.config['tap_step']

    @property
    def lifetime_used(self) -> float:
        return self.operations / self.config['lifetime']

    def _direction(self, voltage_pu: float) -> int:
        if voltage_pu > self.config['v_trigger_high']:
            return -1
        if voltage_pu < self.config['v_trigger_low']:
            return 1
        return 0

    def _inside_dead_band(self, voltage_pu: float) -> bool:
        return abs(voltage_pu - self.config['v_nominal']) <= self.config['dead_band']

    def step(self, time_s: float, voltage_pu: float) -> int:
        """
        Advances the controller to time_s with the monitored voltage.
        Returns:
            int: Tap position in force at time_s.
        """
        if self._pending_time is not None and time_s >= self._pending_time:
            new_tap = min(max(self.tap + self._pending_direction, self.tap_min), self.tap_max)
            if new_tap != self.tap:
                self.tap = new_tap
                self.operations += 1
                logger.debug(f't={time_s:.0f}s OLTC moved to tap {self.tap:+d}')
            self._pending_time = None
            self._pending_direction = 0
            self._blocked_until = time_s + self.config['blocking_time']

        direction = self._direction(voltage_pu)
        # A timer armed for one side of nominal never acts on the other side
        crossed_nominal = self._violation_direction * (voltage_pu - self.config['v_nominal']) > 0
        if self._inside_dead_band(voltage_pu) or crossed_nominal:
            self._violation_start = None
            self._violation_direction = 0
        if direction != 0 and direction != self._violation_direction:
            self._violation_start = time_s
            self._violation_direction = direction

        if (
            self._violation_start is not None
            and self._pending_time is None
            and time_s >= self._blocked_until
            and time_s - self._violation_start >= self.config['delay']
        ):
            at_limit = (
                (self._violation_direction > 0 and self.tap >= self.tap_max)
                or (self._violation_direction < 0 and self.tap <= self.tap_min)
            )
            if not at_limit:
                self._pending_direction = self._violation_direction
                self._pending_time = time_s + self.config['mech_delay']
            # Re-arm so a persisting violation waits a full delay again
            self._violation_start = time_s

        return self.tap
