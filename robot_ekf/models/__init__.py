"""
Motion and measurement models consumed by the EKF engine.

Every model implements one of the two capability interfaces in
robot_ekf.models.base; the engine never depends on a concrete class.
"""

from .base import MotionModel, MeasurementModel

from .motion_models import (
    VelocityNoiseParams,
    VelocityKinematicsModel,
    ConstantVelocityModel,
    create_process_noise_continuous_white_acceleration,
    validate_time_step,
)

from .measurement_models import (
    PoseMeasurement2D,
    RangeBearingMeasurement2D,
)

from .function_models import (
    FunctionMotionModel,
    FunctionMeasurementModel,
)

__all__ = [
    # Capabilities
    'MotionModel',
    'MeasurementModel',

    # Motion models
    'VelocityNoiseParams',
    'VelocityKinematicsModel',
    'ConstantVelocityModel',
    'create_process_noise_continuous_white_acceleration',
    'validate_time_step',

    # Measurement models
    'PoseMeasurement2D',
    'RangeBearingMeasurement2D',

    # Callable adapters
    'FunctionMotionModel',
    'FunctionMeasurementModel',
]
