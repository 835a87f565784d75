from typing import Dict, Optional

import numpy as np

import utils.config as config


class QuDroopInverter:
    def __init__(
        self,
        rating_kw: float,
        inverter_config: Optional[Dict] = None,
        name: str = None,
    ) -> None:
        self.config = dict(config.INVERTER_CONFIG if inverter_config is None else inverter_config)
        self.rating_kw = rating_kw
        self.name = name
        self.v_points = np.asarray(self.config['v_points'], dtype=float)
        self.q_points = np.asarray(self.config['q_points'], dtype=float)
        if np.any(np.diff(self.v_points) <= 0):
            raise ValueError('Q(U) voltage points must be strictly increasing')
        self.q_pu = 0.0

    def q_setpoint_pu(self, voltage_pu: float) -> float:
        """Reactive power target from the Q(U) curve, positive = injection."""
        q = np.interp(voltage_pu, self.v_points, self.q_points)
        q_max = self.config['q_max']
        return float(np.clip(q, -q_max, q_max))

    def step(self, voltage_pu: float, dt: float) -> float:
        """
        First-order response towards the Q(U) setpoint.
        Returns:
            float: Reactive power in kvar.
        """
        target = self.q_setpoint_pu(voltage_pu)
        tau = self.config['response_time']
        alpha = 1.0 if tau <= 0 else 1 - np.exp(-dt / tau)
        self.q_pu += (target - self.q_pu) * alpha
        return self.q_pu * self.rating_kw

    def reset(self) -> None:
        self.q_pu = 0.0
