from dataclasses import dataclass
from typing import Optional

from ..config import (
    MIN_FLOW_RATIO,
    MIN_VELOCITY,
    MAX_VELOCITY,
    STATUS_OK,
    STATUS_NOT_OK,
)


def flow_ratio_calculator(calculated_flow, peak_flow):
    """Compare the capacity of the selected channel with the peak flow coming
    to it. Values >= 1 indicate spare capacity.
    """
    return calculated_flow / peak_flow


@dataclass
class DesignCheck:
    """Outcome of checking a channel design against the design criteria"""

    status: str = STATUS_OK
    error: Optional[str] = None
    velocity_warning: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


def check_design(calculated_flow, peak_flow, velocity) -> DesignCheck:
    """Check a sized channel against the design criteria.

    1. capacity must be at least 95% of the peak flow
    2. velocity must be at least 0.3 m/s
    3. velocity above 4.0 m/s raises a (non-failing) warning

    Checks run in that order. When both 1 and 2 fail, the low velocity
    message replaces the capacity message.
    """
    check = DesignCheck()

    if flow_ratio_calculator(calculated_flow, peak_flow) < MIN_FLOW_RATIO:
        check.status = STATUS_NOT_OK
        check.error = (
            f"Channel capacity ({calculated_flow:.3f} m³/s) is less than "
            f"required peak flow ({peak_flow:.3f} m³/s)"
        )

    if velocity < MIN_VELOCITY:
        check.status = STATUS_NOT_OK
        check.error = f"Velocity too low ({velocity:.2f} m/s). Minimum recommended: {MIN_VELOCITY} m/s"
    elif velocity > MAX_VELOCITY:
        check.velocity_warning = f"Velocity higher than {MAX_VELOCITY} m/s ({velocity:.2f} m/s)"

    return check
