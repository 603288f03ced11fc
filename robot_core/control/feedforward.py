"""
Feedforward Models and Motion Profiles
Model-based voltage for gravity-loaded mechanisms following a trapezoid profile
"""

import numpy as np
from dataclasses import dataclass


@dataclass
class FeedforwardGains:
    """Feedforward constants, all in volts per unit"""
    ks: float = 0.0  # Static friction
    kg: float = 0.0  # Gravity
    kv: float = 0.0  # Velocity
    ka: float = 0.0  # Acceleration


class ElevatorFeedforward:
    """
    Feedforward for a linear mechanism lifting a constant load
    """

    def __init__(self, gains: FeedforwardGains):
        self.gains = gains

    def calculate(self, position: float, velocity: float, acceleration: float = 0.0) -> float:
        g = self.gains
        return float(g.ks * np.sign(velocity) + g.kg + g.kv * velocity + g.ka * acceleration)


class ArmFeedforward:
    """
    Feedforward for a pivot whose gravity torque follows the cosine of its angle

    Positions are degrees from horizontal.
    """

    def __init__(self, gains: FeedforwardGains):
        self.gains = gains

    def calculate(self, position: float, velocity: float, acceleration: float = 0.0) -> float:
        g = self.gains
        return float(g.ks * np.sign(velocity) + g.kg * np.cos(np.radians(position)) +
                     g.kv * velocity + g.ka * acceleration)


@dataclass
class ProfileState:
    position: float = 0.0
    velocity: float = 0.0


@dataclass
class ProfileConstraints:
    max_velocity: float
    max_acceleration: float


class TrapezoidProfile:
    """
    Time-optimal motion profile with bounded velocity and acceleration
    """

    def __init__(self, constraints: ProfileConstraints):
        if constraints.max_velocity <= 0 or constraints.max_acceleration <= 0:
            raise ValueError("Profile constraints must be positive")
        self.constraints = constraints

    def calculate(self, t: float, current: ProfileState, goal: ProfileState) -> ProfileState:
        """
        State of the profile ``t`` seconds after ``current`` on the way to ``goal``
        """
        max_v = self.constraints.max_velocity
        max_a = self.constraints.max_acceleration

        direction = -1.0 if current.position > goal.position else 1.0
        start = ProfileState(current.position * direction, current.velocity * direction)
        end = ProfileState(goal.position * direction, goal.velocity * direction)

        start.velocity = min(start.velocity, max_v)

        # Extend the profile backwards/forwards to zero velocity at both ends
        cutoff_begin = start.velocity / max_a
        cutoff_dist_begin = cutoff_begin * cutoff_begin * max_a / 2.0
        cutoff_end = end.velocity / max_a
        cutoff_dist_end = cutoff_end * cutoff_end * max_a / 2.0

        full_trap_dist = cutoff_dist_begin + (end.position - start.position) + cutoff_dist_end
        accel_time = max_v / max_a
        full_speed_dist = full_trap_dist - accel_time * accel_time * max_a

        # Triangle profile when max velocity is never reached
        if full_speed_dist < 0:
            accel_time = np.sqrt(max(full_trap_dist, 0.0) / max_a)
            full_speed_dist = 0.0

        end_accel = accel_time - cutoff_begin
        end_full_speed = end_accel + full_speed_dist / max_v
        end_decel = end_full_speed + accel_time - cutoff_end

        result = ProfileState(start.position, start.velocity)
        if t < end_accel:
            result.velocity += t * max_a
            result.position += (start.velocity + t * max_a / 2.0) * t
        elif t < end_full_speed:
            result.velocity = max_v
            result.position += ((start.velocity + end_accel * max_a / 2.0) * end_accel +
                                max_v * (t - end_accel))
        elif t <= end_decel:
            time_left = end_decel - t
            result.velocity = end.velocity + time_left * max_a
            result.position = end.position - (end.velocity + time_left * max_a / 2.0) * time_left
        else:
            result = ProfileState(end.position, end.velocity)

        return ProfileState(result.position * direction, result.velocity * direction)
